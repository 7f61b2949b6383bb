"""Configuration for watch-exec.

A configuration comes from the command line, optionally merged with a TOML
file::

    dirs = ["./src"]
    globs = ["*.c", "*.h"]
    regexes = []
    commands = ["make", "./run-tests"]
    restart = false
    log_level = "INFO"
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from watchexec_core.models import Command
from watchexec_core.patterns import PatternMode, PatternSet, PatternSpec, compile_patterns
from watchexec_core.run_queue import POLICIES
from watchexec_core.watchers import WatcherConfig

logger = logging.getLogger(__name__)


class UsageError(Exception):
    """Invalid command line or configuration; fatal before watching starts."""


class ConfigError(UsageError):
    """The configuration file is malformed."""


@dataclass
class WatchExecConfig:
    """Everything needed to build a watch-exec session."""

    dirs: list[Path] = field(default_factory=list)
    """Directories to watch, in order."""

    patterns: list[PatternSpec] = field(default_factory=list)
    """Globs and regexes; empty means every change triggers a run."""

    commands: list[str] = field(default_factory=list)
    """Command strings, in execution order."""

    policy: str = "queue"
    """What happens to a trigger arriving during a run ("queue" or "restart")."""

    log_level: str | None = None
    """Logging level name; None keeps the default."""

    def merge(self, other: "WatchExecConfig") -> "WatchExecConfig":
        """Combine two configurations, other's values after ours."""
        return WatchExecConfig(
            dirs=self.dirs + other.dirs,
            patterns=self.patterns + other.patterns,
            commands=self.commands + other.commands,
            policy="restart" if "restart" in (self.policy, other.policy) else "queue",
            log_level=other.log_level or self.log_level,
        )

    def validate(self) -> None:
        """Raise UsageError unless there is something to watch and run."""
        if not self.dirs:
            raise UsageError("No directory specified")
        if not self.commands:
            raise UsageError("No command specified")
        if self.policy not in POLICIES:
            raise UsageError(f"Unknown policy '{self.policy}'")

    def watcher_configs(self) -> list[WatcherConfig]:
        return [WatcherConfig(dir=d) for d in self.dirs]

    def compile_patterns(self) -> PatternSet:
        """Compile every pattern.

        Raises:
            PatternCompileError: On the first invalid pattern
        """
        return compile_patterns(self.patterns)

    def build_commands(self) -> list[Command]:
        return [Command.parse(text) for text in self.commands]


def _string_list(raw: dict, key: str, path: Path) -> list[str]:
    value = raw.get(key, [])
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{path}: '{key}' must be a string or a list of strings")
    return value


def load_config(path: str | Path) -> WatchExecConfig:
    """Load a watch-exec TOML file.

    Relative directories are resolved against the file's own directory.

    Args:
        path: Path to the TOML file

    Returns:
        WatchExecConfig with the file's values

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is not valid TOML or has wrong value types
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    restart = raw.get("restart", False)
    if not isinstance(restart, bool):
        raise ConfigError(f"{path}: 'restart' must be true or false")

    log_level = raw.get("log_level")
    if log_level is not None and not isinstance(log_level, str):
        raise ConfigError(f"{path}: 'log_level' must be a string")

    patterns = [PatternSpec(g, PatternMode.GLOB) for g in _string_list(raw, "globs", path)]
    patterns += [PatternSpec(r, PatternMode.REGEX) for r in _string_list(raw, "regexes", path)]

    config = WatchExecConfig(
        dirs=[path.parent / d for d in _string_list(raw, "dirs", path)],
        patterns=patterns,
        commands=_string_list(raw, "commands", path),
        policy="restart" if restart else "queue",
        log_level=log_level,
    )
    logger.debug(
        f"Loaded {path}: {len(config.dirs)} dir(s), {len(config.patterns)} pattern(s), "
        f"{len(config.commands)} command(s)"
    )
    return config
