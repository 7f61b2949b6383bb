"""Filesystem watcher built on watchdog."""

import logging
import os
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from watchexec_core.dispatcher import ChangeDispatcher
from watchexec_core.models import WatchAction, WatchEvent
from watchexec_core.watchers import TriggerSourceWatcher, WatcherConfig

logger = logging.getLogger(__name__)


class _DispatchingHandler(FileSystemEventHandler):
    """Translates watchdog file events for one root into WatchEvents."""

    def __init__(self, root: Path, dispatcher: ChangeDispatcher):
        """Initialize handler.

        Args:
            root: Watched directory as configured
            dispatcher: Receives every translated event
        """
        self.root = root
        self.dispatcher = dispatcher
        self._abs_root = os.path.abspath(root)

    def relative(self, path: str | bytes) -> str:
        """Path relative to the watched root, with forward slashes."""
        rel = os.path.relpath(os.path.abspath(os.fsdecode(path)), self._abs_root)
        return rel.replace(os.sep, "/")

    def _dispatch(self, action: WatchAction, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        try:
            old_path = None
            path = self.relative(event.src_path)
            if action is WatchAction.MOVED:
                old_path = path
                path = self.relative(event.dest_path)

            self.dispatcher.on_event(
                WatchEvent(action=action, root=str(self.root), path=path, old_path=old_path)
            )
        except Exception:
            # Never let a failure escape into the observer thread
            logger.exception(f"Error handling change in {self.root}")

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch(WatchAction.CREATED, event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._dispatch(WatchAction.DELETED, event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch(WatchAction.MODIFIED, event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._dispatch(WatchAction.MOVED, event)


class FileWatcherManager(TriggerSourceWatcher):
    """Watches any number of directories and feeds one dispatcher."""

    def __init__(self, dispatcher: ChangeDispatcher, observer=None):
        """Initialize file watcher manager.

        Args:
            dispatcher: Receives every change
            observer: watchdog observer (default: a new Observer())
        """
        self.dispatcher = dispatcher
        self.observer = observer if observer is not None else Observer()
        self.handlers: list[_DispatchingHandler] = []

    def add_watch(self, config: WatcherConfig) -> None:
        """Schedule a directory.

        Args:
            config: Watcher configuration

        Raises:
            NotADirectoryError: If the directory does not exist
        """
        config.validate()
        handler = _DispatchingHandler(config.dir, self.dispatcher)
        self.observer.schedule(handler, str(config.dir), recursive=config.recursive)
        self.handlers.append(handler)
        logger.debug(f"Watching {config.dir} (recursive: {config.recursive})")

    def start(self) -> None:
        """Start delivering events."""
        if not self.handlers:
            logger.debug("No directories to watch")
            return

        self.observer.start()
        logger.info("Watching for file changes...")

    def stop(self) -> None:
        """Stop the observer thread."""
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=2.0)
            logger.debug("Stopped file watchers")
