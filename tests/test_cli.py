from unittest.mock import patch

from typer.testing import CliRunner

from image_search.cli import app
from image_search.models import SearchOutcome
from image_search.runner import EXIT_OK

runner = CliRunner()


def test_settings_reports_effective_configuration(monkeypatch):
    monkeypatch.setenv("UNSPLASH_ACCESS_KEY", "abc")
    monkeypatch.setenv("IMAGE_MAX_CONCURRENCY", "-2")

    result = runner.invoke(app, ["settings"])

    assert result.exit_code == 0
    assert "unsplash_api_key: set" in result.output
    assert "max_concurrency: 3" in result.output


@patch("image_search.cli.run_sync")
def test_search_passes_overrides_and_prints_json(mock_run, tmp_path):
    mock_run.return_value = (EXIT_OK, SearchOutcome("cars", 0, 0, ()))

    result = runner.invoke(
        app,
        ["search", "cars", "--limit", "5", "--output-dir", str(tmp_path), "--concurrency", "4", "--json"],
    )

    assert result.exit_code == EXIT_OK
    args, kwargs = mock_run.call_args
    assert args == ("cars",)
    assert kwargs["limit"] == 5
    assert kwargs["processing"].output_dir == tmp_path
    assert kwargs["processing"].max_concurrency == 4
    assert '"searchQuery": "cars"' in result.output
