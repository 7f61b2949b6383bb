"""Watcher protocol: anything that feeds WatchEvents to a ChangeDispatcher."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass
class WatcherConfig:
    """One directory to watch."""

    dir: Path
    """Directory to watch, as given by the user (used in log lines)."""

    recursive: bool = True
    """Also report changes in subdirectories."""

    def validate(self) -> None:
        """Raise NotADirectoryError if dir is not an existing directory."""
        if not self.dir.is_dir():
            raise NotADirectoryError(f"Cannot watch '{self.dir}': not a directory")


class TriggerSourceWatcher(Protocol):
    """Delivers filesystem changes to a dispatcher from its own thread(s)."""

    def add_watch(self, config: WatcherConfig) -> None:
        """Register a directory; must be called before start()."""
        ...

    def start(self) -> None:
        """Begin delivering events."""
        ...

    def stop(self) -> None:
        """Stop delivering events and release OS watch handles."""
        ...
