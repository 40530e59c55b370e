"""Tests for the command-line interface."""

import json
from types import SimpleNamespace

import pytest
from click.testing import CliRunner

from batch_productivity_sim.cli import _load_config, main
from batch_productivity_sim.config import Config


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_args(tmp_path):
    return ["--config", str(tmp_path / "missing.yaml")]


class TestCommands:
    """Tests for the CLI commands."""

    def test_roles_lists_table(self, runner, config_args):
        result = runner.invoke(main, config_args + ["roles"])

        assert result.exit_code == 0
        assert "Fridge Filler" in result.output
        assert "Pharmacist Verification" in result.output
        assert "Batch sizes: 30, 15, 5" in result.output

    def test_generate_json(self, runner, config_args):
        result = runner.invoke(
            main, config_args + ["generate", "fridge", "-b", "30", "-v", "8", "--seed", "1"]
        )

        assert result.exit_code == 0
        samples = json.loads(result.output)
        assert len(samples) == 480
        assert samples[0]["minute"] == 0

    def test_generate_csv(self, runner, config_args):
        result = runner.invoke(
            main,
            config_args + ["generate", "tech", "-b", "5", "-v", "3", "-n", "10", "-f", "csv"],
        )

        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines[0] == "minute,productivity"
        assert len(lines) == 11

    def test_summary(self, runner, config_args):
        result = runner.invoke(main, config_args + ["summary", "fridge", "-b", "30", "-v", "8"])

        assert result.exit_code == 0
        assert "17 min per unit" in result.output
        assert "28% productivity drop" in result.output
        assert "~28 over 8h" in result.output

    def test_compare(self, runner, config_args):
        result = runner.invoke(main, config_args + ["compare", "shippers", "-v", "12", "--seed", "5"])

        assert result.exit_code == 0
        assert "All Batch Sizes - Shippers" in result.output

    def test_publish_dry_run(self, runner, config_args):
        result = runner.invoke(
            main, config_args + ["publish", "pharma", "-b", "15", "-v", "8", "--dry-run"]
        )

        assert result.exit_code == 0
        assert "Published 7 messages" in result.output
        assert "_productivity/pharma/#" in result.output

    def test_init_writes_config(self, runner, tmp_path):
        result = runner.invoke(main, ["init", "-o", str(tmp_path / "cfg")])

        assert result.exit_code == 0
        assert (tmp_path / "cfg" / "config.yaml").exists()

    def test_init_output_loads_back(self, runner, tmp_path):
        runner.invoke(main, ["init", "-o", str(tmp_path)])

        result = runner.invoke(
            main, ["--config", str(tmp_path / "config.yaml"), "summary", "tech", "-b", "15", "-v", "10"]
        )

        assert result.exit_code == 0
        assert "2 min per unit" in result.output


class TestErrors:
    """Invalid input exits with status 1 and a message."""

    def test_unknown_role(self, runner, config_args):
        result = runner.invoke(main, config_args + ["generate", "unknown-role", "-b", "30", "-v", "10"])

        assert result.exit_code == 1
        assert "Undefined role" in result.output

    def test_unsupported_batch(self, runner, config_args):
        result = runner.invoke(main, config_args + ["summary", "fridge", "-b", "7", "-v", "10"])

        assert result.exit_code == 1
        assert "Unsupported batch size" in result.output

    def test_zero_points(self, runner, config_args):
        result = runner.invoke(main, config_args + ["generate", "fridge", "-b", "30", "-n", "0"])

        assert result.exit_code == 1
        assert "num_points" in result.output

    @pytest.mark.parametrize(
        "text", ["roles:\n", "shift: 5\n", "shift: {num_points: 480\n", "batch_sizes: [x]\n"]
    )
    def test_malformed_config_file(self, runner, tmp_path, text):
        path = tmp_path / "config.yaml"
        path.write_text(text)

        result = runner.invoke(main, ["--config", str(path), "roles"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not isinstance(result.exception, (AttributeError, TypeError))

    def test_non_integer_port_env(self, runner, config_args):
        result = runner.invoke(main, config_args + ["roles"], env={"MQTT_PORT": "abc"})

        assert result.exit_code == 1
        assert "Error: MQTT_PORT must be an integer" in result.output


class TestOverrides:
    """Command-line overrides leave the loaded config untouched."""

    @pytest.fixture
    def ctx(self):
        config = Config.default()
        config.simulation.random_seed = 1
        return SimpleNamespace(obj={"config": config})

    def test_overrides_apply_to_copy(self, ctx):
        config = _load_config(ctx, seed=99, points=60)

        assert config.simulation.random_seed == 99
        assert config.shift.num_points == 60
        assert ctx.obj["config"].simulation.random_seed == 1
        assert ctx.obj["config"].shift.num_points == 480

    def test_overrides_keep_other_settings(self, ctx):
        config = _load_config(ctx, points=60)

        assert config.simulation.random_seed == 1
        assert config.roles is ctx.obj["config"].roles
        assert config.mqtt is ctx.obj["config"].mqtt

    def test_no_overrides_returns_loaded_config(self, ctx):
        assert _load_config(ctx) is ctx.obj["config"]
