"""Tests for watch_exec.cli module."""

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from watchexec_core.config import UsageError
from watchexec_core.patterns import PatternMode, PatternSpec

from watch_exec import __version__
from watch_exec.cli import build_config, main, parse_args


def config_from(argv):
    return build_config(parse_args(argv))


class TestParseArgs:
    """Tests for argument parsing and configuration building."""

    def test_flag_forms_are_equivalent(self):
        spaced = config_from(["-d", "A", "-d", "B", "-c", "echo A", "-c", "echo B"])
        equals = config_from(["--dir=A", "--dir=B", "--cmd=echo A", "--cmd=echo B"])

        assert spaced.dirs == equals.dirs == [Path("A"), Path("B")]
        assert spaced.commands == equals.commands == ["echo A", "echo B"]

    def test_short_flag_with_equals(self):
        config = config_from(["-d=src", "-g=*.c", "-c=make"])
        assert config.dirs == [Path("src")]
        assert config.patterns == [PatternSpec("*.c", PatternMode.GLOB)]
        assert config.commands == ["make"]

    def test_flag_with_several_values(self):
        config = config_from(["-d", "A", "B", "-g", "*.c", "*.h", "-r", "^src", "-c", "make", "make test"])

        assert config.dirs == [Path("A"), Path("B")]
        assert config.patterns == [
            PatternSpec("*.c", PatternMode.GLOB),
            PatternSpec("*.h", PatternMode.GLOB),
            PatternSpec("^src", PatternMode.REGEX),
        ]
        assert config.commands == ["make", "make test"]

    def test_positional_dir_and_command(self):
        config = config_from(["src", "make"])
        assert config.dirs == [Path("src")]
        assert config.patterns == []
        assert config.commands == ["make"]

    def test_positional_dir_glob_and_commands(self):
        config = config_from(["src", "*.c", "make", "./run-tests"])
        assert config.dirs == [Path("src")]
        assert config.patterns == [PatternSpec("*.c", PatternMode.GLOB)]
        assert config.commands == ["make", "./run-tests"]

    def test_positional_and_flags_cannot_mix(self):
        with pytest.raises(UsageError, match="cannot be combined"):
            config_from(["src", "make", "-g", "*.c"])

    def test_too_few_arguments(self):
        with pytest.raises(UsageError, match="Too few arguments"):
            config_from(["src"])

    def test_missing_command(self):
        with pytest.raises(UsageError, match="No command specified"):
            config_from(["-d", "src"])

    def test_restart_flag(self):
        assert config_from(["src", "make"]).policy == "queue"
        assert config_from(["--restart", "src", "make"]).policy == "restart"

    def test_config_file_values_come_first(self, tmp_path):
        config_file = tmp_path / "watch.toml"
        config_file.write_text('dirs = ["lib"]\ncommands = ["make"]\n')

        config = config_from(["--config", str(config_file), "-c", "make test"])

        assert config.dirs == [tmp_path / "lib"]
        assert config.commands == ["make", "make test"]

    def test_log_level(self):
        assert parse_args(["--log-level", "debug", "a", "b"]).log_level == "DEBUG"


class TestExitCodes:
    """Tests for help, version and usage errors."""

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--help"])
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "watch-exec <dir> <cmd>" in out
        assert "- 'r': rerun all commands immediately" in out

    @pytest.mark.parametrize("flag", ["-v", "--version"])
    def test_version(self, flag, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args([flag])
        assert exc_info.value.code == 0
        assert f"Watch-Exec (watch-exec): v{__version__}" in capsys.readouterr().out

    def test_unknown_flag_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--bogus"])
        assert exc_info.value.code == 1
        assert "--help" in capsys.readouterr().err

    def test_flag_without_value_exits_1(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["-d"])
        assert exc_info.value.code == 1


class TestMain:
    """Tests for main()."""

    def test_no_arguments(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert main([]) == 1
        assert "No directory specified" in caplog.text

    def test_malformed_glob_exits_before_watching(self, tmp_path, caplog):
        with patch("watch_exec.cli.WatchExecController.run") as run:
            with caplog.at_level(logging.INFO):
                code = main(["-d", str(tmp_path), "-g", "[abc", "-c", "echo hi"])

        assert code == 1
        run.assert_not_called()
        assert "bracket is missing" in caplog.text
        assert "'[abc'" in caplog.text
        assert "Watching for file changes" not in caplog.text

    def test_missing_config_file(self, tmp_path, caplog):
        with caplog.at_level(logging.ERROR):
            assert main(["--config", str(tmp_path / "nope.toml")]) == 1
        assert "Config file not found" in caplog.text

    def test_runs_controller(self, tmp_path):
        controller = MagicMock()
        controller.run.return_value = 0
        with patch("watch_exec.cli.WatchExecController", return_value=controller) as cls:
            assert main([str(tmp_path), "echo hi"]) == 0

        config = cls.call_args[0][0]
        assert config.dirs == [tmp_path]
        assert config.commands == ["echo hi"]
        controller.run.assert_called_once()

    def test_ctrl_c_exits_130(self, tmp_path):
        controller = MagicMock()
        controller.run.side_effect = KeyboardInterrupt
        with patch("watch_exec.cli.WatchExecController", return_value=controller):
            assert main([str(tmp_path), "echo hi"]) == 130

    def test_missing_directory_exits_1(self, tmp_path, caplog):
        controller = MagicMock()
        controller.run.side_effect = UsageError("Cannot watch 'x': not a directory")
        with patch("watch_exec.cli.WatchExecController", return_value=controller):
            with caplog.at_level(logging.ERROR):
                assert main([str(tmp_path / "x"), "echo hi"]) == 1
        assert "not a directory" in caplog.text
