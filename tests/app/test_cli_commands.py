from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from maps_crawler.app import AppState, app
from maps_crawler.config import AppConfig
from maps_crawler.service import BulkOutcome, ScrapeOutcome


class StubService:
    def __init__(self, records) -> None:
        self.records = records
        self.calls: list[tuple] = []
        self.closed = False

    async def run_sync(self, query, max_results=None, workers=None):
        self.calls.append(("sync", query, max_results, workers))
        return ScrapeOutcome(query=query, results=list(self.records), duration=1.5)

    async def run_bulk(self, queries, max_results=None, workers=None):
        self.calls.append(("bulk", tuple(queries), max_results, workers))
        return BulkOutcome(
            total_queries=len(queries),
            results={queries[0]: list(self.records)},
            errors={query: "Timeout" for query in queries[1:]},
            duration=2.0,
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def cli_state(monkeypatch, temp_config_repository, record_factory):
    service = StubService([record_factory("Cafe Uno", "+39 06 123"), record_factory("Bar Due")])
    state = AppState(
        repository=temp_config_repository,
        config=AppConfig(),
        service_factory=lambda: service,
    )
    monkeypatch.setattr("maps_crawler.app.build_state", lambda verbose: state)
    return state, service


def test_cli_scrape_prints_table(cli_state) -> None:
    _, service = cli_state
    result = CliRunner().invoke(app, ["scrape", "cafe rome", "--max-results", "5", "--workers", "2"])
    assert result.exit_code == 0, result.stdout
    assert service.calls == [("sync", "cafe rome", 5, 2)]
    assert service.closed
    assert "Cafe Uno" in result.stdout
    assert "Bar Due" in result.stdout
    assert "2 results in 1.5s" in result.stdout


def test_cli_scrape_exports_csv(cli_state, tmp_path: Path) -> None:
    output_dir = tmp_path / "exports"
    result = CliRunner().invoke(
        app, ["scrape", "cafe rome", "--output", str(output_dir), "--format", "csv"]
    )
    assert result.exit_code == 0, result.stdout
    files = list(output_dir.glob("cafe_rome-*.csv"))
    assert len(files) == 1
    assert "Cafe Uno" in files[0].read_text(encoding="utf-8")


def test_cli_scrape_export_defaults_to_outputs_dir(cli_state) -> None:
    state, _ = cli_state
    result = CliRunner().invoke(app, ["scrape", "cafe rome", "--export"])
    assert result.exit_code == 0, result.stdout
    files = list(state.repository.locator.outputs_dir.glob("cafe_rome-*.jsonl"))
    assert len(files) == 1
    assert "Bar Due" in files[0].read_text(encoding="utf-8")


def test_cli_scrape_rejects_unknown_format(cli_state, tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["scrape", "cafe", "--output", str(tmp_path), "--format", "xml"])
    assert result.exit_code == 1
    assert "Unsupported output format" in result.stdout


def test_cli_bulk_lists_counts_and_errors(cli_state) -> None:
    _, service = cli_state
    result = CliRunner().invoke(app, ["bulk", "pizza", "sushi"])
    assert result.exit_code == 0, result.stdout
    assert service.calls == [("bulk", ("pizza", "sushi"), None, None)]
    assert "Timeout" in result.stdout
    assert "1/2 queries succeeded" in result.stdout


def test_cli_config_show_masks_api_key(cli_state) -> None:
    state, _ = cli_state
    state.config = AppConfig.model_validate({"server": {"api_key": "top-secret"}})
    result = CliRunner().invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.stdout
    assert "max_browsers: 3" in result.stdout
    assert "top-secret" not in result.stdout
