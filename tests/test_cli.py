# tests/test_cli.py
"""
Tests for the ``strata`` command-line interface.

Covers:
    - make (JSON, TOML and pretty output)
    - help, check and argv
    - Preset files (-c), environment prefixes (-p)
    - Error reporting and exit codes
"""

import json

import pytest
import toml
from click.testing import CliRunner

from strata.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def toml_preset(tmp_path):
    path = tmp_path / "preset.toml"
    path.write_text(toml.dumps({"name": "preset", "model": {"hidden": 16}}))
    return str(path)


# ---------------------------------------------------------------------------
# make
# ---------------------------------------------------------------------------


class TestMake:
    """`strata make TARGET ARGS...`"""

    def test_json_output(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Experiment", "name=run", "model.hidden=8"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"name": "run", "model": {"hidden": 8, "layers": 2}}

    def test_toml_output(self, runner):
        result = runner.invoke(cli, ["make", "--to", "toml", "sample_schemas:Experiment", "name=run"])
        assert result.exit_code == 0, result.output
        assert toml.loads(result.output) == {"name": "run", "model": {"hidden": 64, "layers": 2}}

    def test_wildcard_and_polymorphic(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Trainer", "optimizer=adam", "...lr=0.5"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"optimizer": {"lr": 0.5, "beta1": 0.9}, "steps": 100}

    def test_preset_then_args(self, runner, toml_preset):
        result = runner.invoke(cli, ["-c", toml_preset, "make", "sample_schemas:Experiment", "model.layers=3"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"name": "preset", "model": {"hidden": 16, "layers": 3}}

    def test_env_prefix(self, runner, monkeypatch):
        monkeypatch.setenv("CLI_TEST_NAME", "from-env")
        result = runner.invoke(cli, ["-p", "CLI_TEST", "--no-dotenv", "make", "sample_schemas:Experiment"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["name"] == "from-env"

    def test_args_beat_env(self, runner, monkeypatch):
        monkeypatch.setenv("CLI_TEST_NAME", "from-env")
        result = runner.invoke(cli, ["-p", "CLI_TEST", "--no-dotenv", "make", "sample_schemas:Experiment", "name=cli"])
        assert json.loads(result.output)["name"] == "cli"

    def test_pretty_output(self, runner):
        result = runner.invoke(cli, ["make", "--to", "pretty", "sample_schemas:Experiment", "name=run"])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("Experiment(\n")
        assert "name='run'," in result.output
        assert "\x1b[" not in result.output

    def test_help_flag_prints_help(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Experiment", "help"])
        assert result.exit_code == 0
        assert "Entry point: sample_schemas:Experiment" in result.output


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    """Failures print an error and exit 1."""

    def test_missing(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Experiment"])
        assert result.exit_code == 1
        assert "Missing required argument: name" in result.output

    def test_extraneous(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Experiment", "name=x", "model.hiden=3"])
        assert result.exit_code == 1
        assert "Did you mean: model.hidden?" in result.output

    def test_bad_argument(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Experiment", "name"])
        assert result.exit_code == 1
        assert "key=value" in result.output

    def test_unknown_target(self, runner):
        result = runner.invoke(cli, ["make", "sample_schemas:Nope"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_preset(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "absent.toml"), "make", "sample_schemas:Experiment"])
        assert result.exit_code == 1
        assert "not found" in result.output


# ---------------------------------------------------------------------------
# help / check
# ---------------------------------------------------------------------------


class TestHelpAndCheck:
    """`strata help` and `strata check`."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["help", "sample_schemas:Experiment", "model.hidden=8"])
        assert result.exit_code == 0, result.output
        assert "WARNING: Missing required arguments for parameter(s): name" in result.output
        assert "model.hidden" in result.output

    def test_check_ok(self, runner):
        result = runner.invoke(cli, ["check", "sample_schemas:Experiment", "name=x"])
        assert result.exit_code == 0, result.output

    def test_check_fails(self, runner):
        result = runner.invoke(cli, ["check", "sample_schemas:Bounded", "low=5", "high=1"])
        assert result.exit_code == 1
        assert "Validation error" in result.output


# ---------------------------------------------------------------------------
# argv
# ---------------------------------------------------------------------------


class TestArgv:
    """`strata argv` collapses every layer into one command line."""

    def test_preset_and_args(self, runner, toml_preset):
        result = runner.invoke(cli, ["-c", toml_preset, "argv", "sample_schemas:Experiment", "model.layers=3"])
        assert result.exit_code == 0, result.output
        assert result.output.split() == ["model.hidden=16", "name=preset", "model.layers=3"]

    def test_output_replays(self, runner, toml_preset):
        collapsed = runner.invoke(cli, ["-c", toml_preset, "argv", "sample_schemas:Experiment", "name=cli"])
        result = runner.invoke(cli, ["make", "sample_schemas:Experiment", *collapsed.output.split()])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"name": "cli", "model": {"hidden": 16, "layers": 2}}
