"""
Tests for the CLI interface.
"""
import logging
import os
import tempfile
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from content_engine.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from content_engine.core.pipeline import PipelineConfig, create_pipeline

runner = CliRunner()

BRIEF = {
    "type": "destination",
    "site_id": "site_1",
    "target_keyword": "things to do in lisbon",
    "tone": "enthusiastic",
    "target_length": {"min": 600, "max": 900},
}


@pytest.fixture(autouse=True)
def no_root_handlers():
    """Keep the CLI from attaching handlers to runner-owned streams."""
    with patch('content_engine.cli.main.setup_logging') as mock_setup:
        yield mock_setup


@pytest.fixture
def workdir():
    """Temporary directory holding a brief file."""
    temp_dir = tempfile.mkdtemp()
    with open(os.path.join(temp_dir, "brief.yaml"), 'w', encoding='utf-8') as f:
        yaml.dump(BRIEF, f)
    yield temp_dir
    import shutil
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def scripted_pipeline(scripted_backend):
    """Patch pipeline creation to run against a scripted backend."""
    def _install(scores):
        backend = scripted_backend(scores=scores)
        return patch(
            'content_engine.cli.main.create_pipeline',
            side_effect=lambda config: create_pipeline(config, backend=backend),
        )
    return _install


class TestCLI:
    """Test CLI commands."""

    def test_no_command_shows_hint(self):
        result = runner.invoke(app, [])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Use --help" in result.output

    def test_generate_pass(self, workdir, scripted_pipeline):
        output = os.path.join(workdir, "out.md")
        with scripted_pipeline([80]):
            result = runner.invoke(app, [
                "generate", os.path.join(workdir, "brief.yaml"), "--output", output,
            ])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Content Generation Result" in result.output
        assert "PASS" in result.output
        with open(output, encoding='utf-8') as f:
            assert f.read().startswith("# Draft 1")

    def test_generate_quality_shortfall_warns(self, workdir, scripted_pipeline):
        """Failing the bar is non-fatal unless enforced."""
        with scripted_pipeline([50]):
            result = runner.invoke(app, ["generate", os.path.join(workdir, "brief.yaml")])

        assert result.exit_code == EXIT_CODE_PASS
        assert "WARN" in result.output
        assert "Quality threshold not met" in result.output

    def test_generate_enforced_fails(self, workdir, scripted_pipeline):
        with scripted_pipeline([50]):
            result = runner.invoke(app, [
                "generate", os.path.join(workdir, "brief.yaml"), "--enforced",
            ])

        assert result.exit_code == EXIT_CODE_FAIL

    def test_generate_missing_brief(self, workdir):
        result = runner.invoke(app, ["generate", os.path.join(workdir, "nope.yaml")])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "not found" in result.output

    def test_generate_upstream_error(self, workdir):
        with patch('content_engine.cli.main.create_pipeline') as mock_create:
            mock_create.return_value.generate.side_effect = ConnectionError("upstream down")
            result = runner.invoke(app, ["generate", os.path.join(workdir, "brief.yaml")])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "upstream down" in result.output

    def test_estimate(self):
        result = runner.invoke(app, [
            "estimate", "--model", "haiku", "--input-tokens", "1000000", "--output-tokens", "1000000",
        ])
        assert result.exit_code == EXIT_CODE_PASS
        assert "$6.0000" in result.output

    def test_estimate_unknown_model_warns(self):
        result = runner.invoke(app, [
            "estimate", "--model", "mystery", "--input-tokens", "10", "--output-tokens", "10",
        ])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Unknown model" in result.output

    def test_show_config_defaults(self):
        result = runner.invoke(app, ["show-config"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "anthropic" in result.output
        assert "$50.00" in result.output

    def test_show_config_invalid_file(self, workdir):
        path = os.path.join(workdir, "config.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump({"unknown": {}}, f)

        result = runner.invoke(app, ["show-config", "--config", path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown keys" in result.output

    def test_generate_uses_config_file(self, workdir, scripted_pipeline):
        path = os.path.join(workdir, "config.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump({"quality": {"threshold": 40}}, f)

        with scripted_pipeline([50]) as mock_create:
            result = runner.invoke(app, [
                "generate", os.path.join(workdir, "brief.yaml"), "--config", path, "--enforced",
            ])

        assert result.exit_code == EXIT_CODE_PASS
        config = mock_create.call_args.args[0]
        assert isinstance(config, PipelineConfig)
        assert config.quality_threshold == 40

    def test_verbose_enables_debug_logging(self, workdir, scripted_pipeline, no_root_handlers):
        with scripted_pipeline([80]):
            runner.invoke(app, ["generate", os.path.join(workdir, "brief.yaml"), "--verbose"])

        no_root_handlers.assert_called_once_with(logging.DEBUG, json_output=False)
