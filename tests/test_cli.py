"""Tests for the command-line interface."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from disector.cli import DEFAULT_DUMP_DIR, build_config, cli, split_values
from disector.models.config import DisectorConfig
from disector.models.report import PhaseStats, ReductionResult, ReductionStats

SOURCE = "<html><body><p>hello</p><div></div></body></html>"
REDUCED = "<html><body><p>hello</p></body></html>"


@pytest.fixture
def page(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(SOURCE, encoding="utf-8")
    return path


@pytest.fixture
def orchestrator():
    with patch("disector.cli.Orchestrator") as orchestrator_class:
        orchestrator_class.return_value.run.return_value = ReductionResult(
            document=REDUCED,
            pristine=True,
            stats=ReductionStats(
                renders=5,
                input_size=len(SOURCE),
                final_size=len(REDUCED),
                phases=[PhaseStats(phase="node", tested=4, removed=1)],
                phase_sizes={"node": len(REDUCED)},
                pristine=True,
            ),
        )
        yield orchestrator_class


class TestReduce:

    def test_document_is_the_only_stdout(self, page, orchestrator):
        result = CliRunner().invoke(cli, ["reduce", str(page)])

        assert result.exit_code == 0
        assert result.stdout == REDUCED + "\n"

    def test_source_and_name_reach_the_orchestrator(self, page, orchestrator):
        CliRunner().invoke(cli, ["reduce", str(page), "-d", "Desktop", "-p", "css"])

        source, config = orchestrator.call_args.args
        assert source == SOURCE
        assert config.devices == ["Desktop"]
        assert config.phases == ["css"]
        assert orchestrator.call_args.kwargs["name"] == "page.html"

    def test_repeated_and_comma_separated_lists(self, page, orchestrator):
        CliRunner().invoke(cli, [
            "reduce", str(page),
            "-d", "Desktop", "-d", "iPad Pro landscape",
            "-p", "node,attr", "-p", "css",
        ])

        config = orchestrator.call_args.args[1]
        assert config.devices == ["Desktop", "iPad Pro landscape"]
        assert config.phases == ["node", "attr", "css"]

    def test_out_file(self, page, orchestrator, tmp_path):
        out = tmp_path / "reduced.html"

        result = CliRunner().invoke(cli, ["reduce", str(page), "--out", str(out)])

        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8") == REDUCED
        assert REDUCED not in result.stdout

    def test_overwrite(self, page, orchestrator):
        result = CliRunner().invoke(cli, ["reduce", str(page), "--overwrite"])

        assert result.exit_code == 0
        assert page.read_text(encoding="utf-8") == REDUCED

    def test_not_pristine_still_writes_result(self, page, orchestrator):
        orchestrator.return_value.run.return_value = ReductionResult(
            document=REDUCED, pristine=False
        )

        result = CliRunner().invoke(cli, ["reduce", str(page)])

        assert result.exit_code == 0
        assert result.stdout == REDUCED + "\n"
        assert "Final check failed" in result.stderr

    def test_stats_go_to_stderr(self, page, orchestrator):
        result = CliRunner().invoke(cli, ["reduce", str(page), "--stats"])

        assert "Reduction Summary" in result.stderr
        assert "Reduction Summary" not in result.stdout

    def test_failure_exits_nonzero(self, page, orchestrator):
        orchestrator.return_value.run.side_effect = RuntimeError("browser crashed")

        result = CliRunner().invoke(cli, ["reduce", str(page)])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "browser crashed" in result.stderr

    def test_missing_config_exits_nonzero(self, page, orchestrator, tmp_path):
        result = CliRunner().invoke(
            cli, ["reduce", str(page), "--config", str(tmp_path / "missing.json")]
        )

        assert result.exit_code == 1
        orchestrator.assert_not_called()

    def test_missing_input(self, tmp_path, orchestrator):
        result = CliRunner().invoke(cli, ["reduce", str(tmp_path / "nope.html")])

        assert result.exit_code != 0
        orchestrator.assert_not_called()


class TestBuildConfig:

    def test_split_values_keeps_spaces_inside_names(self):
        assert split_values(("Desktop, iPad Pro landscape",)) == ["Desktop", "iPad Pro landscape"]
        assert split_values(("node,,attr", "html")) == ["node", "attr", "html"]

    def test_defaults(self):
        config = build_config(None, False, (), (), None, False, False)
        assert config == DisectorConfig()

    def test_overrides(self):
        config = build_config(None, True, ("Desktop",), ("node", "html"), "out", True, False)

        assert config.headless is False
        assert config.devices == ["Desktop"]
        assert config.phases == ["node", "html"]
        assert config.dump_dir == "out"
        assert config.dump_renders is True

    def test_dump_flags_imply_default_directory(self):
        config = build_config(None, False, (), (), None, False, True)

        assert config.dump_dir == DEFAULT_DUMP_DIR
        assert config.dump_diffs is True

    def test_file_then_flags(self, tmp_path):
        path = tmp_path / "disector.json"
        DisectorConfig(devices=["Desktop"], phases=["css"], settle_ms=10).save(path)

        config = build_config(str(path), False, (), ("attr",), None, False, False)

        assert config.devices == ["Desktop"]
        assert config.phases == ["attr"]
        assert config.settle_ms == 10


class TestOtherCommands:

    def test_devices_lists_builtins(self):
        result = CliRunner().invoke(cli, ["devices"])

        assert result.exit_code == 0
        assert "Desktop" in result.stderr
        assert "iPad Pro landscape" in result.stderr

    def test_init_writes_default_config(self, tmp_path):
        path = tmp_path / "disector.json"

        result = CliRunner().invoke(cli, ["init", "--config", str(path)])

        assert result.exit_code == 0
        assert DisectorConfig.load(path) == DisectorConfig()

    def test_init_keeps_existing_file_when_declined(self, tmp_path):
        path = tmp_path / "disector.json"
        path.write_text("{}")

        CliRunner().invoke(cli, ["init", "--config", str(path)], input="n\n")

        assert path.read_text() == "{}"
