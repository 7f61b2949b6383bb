"""Top-level engine object for watch-exec. Primary embed point."""

import logging
from collections.abc import Callable
from typing import BinaryIO

from watchexec_core.config import UsageError, WatchExecConfig
from watchexec_core.dispatcher import ChangeDispatcher
from watchexec_core.events import create_event
from watchexec_core.file_watcher import FileWatcherManager
from watchexec_core.models import QueueResult, TriggerSource
from watchexec_core.run_queue import ExecutionWorker, RunQueue
from watchexec_core.subproc import SubprocessRunner
from watchexec_core.terminal import TerminalController

from watch_exec.keyboard_handler import KeyboardHandler

logger = logging.getLogger(__name__)


class WatchExecController:
    """Owns every component of one watch-exec session.

    Built once from a WatchExecConfig; nothing is process-global, so several
    controllers (or test fixtures) can coexist. Components can be injected
    for embedding and tests.

    Lifecycle:
        controller = WatchExecController(config)
        controller.run()     # start(), key loop until 'q', stop()
    """

    def __init__(
        self,
        config: WatchExecConfig,
        terminal: TerminalController | None = None,
        runner: SubprocessRunner | None = None,
        observer=None,
        output: BinaryIO | None = None,
        event_factory: Callable = create_event,
    ):
        """Initialize controller.

        Args:
            config: Validated configuration
            terminal: Terminal controller (default: one for the real console)
            runner: Subprocess runner (default: forwards output to `output`)
            observer: watchdog observer for the file watcher
            output: Binary stream for command output (default: sys.stdout.buffer)
            event_factory: Creates the worker's wakeup event

        Raises:
            PatternCompileError: If a configured pattern is invalid
        """
        self.config = config
        self.patterns = config.compile_patterns()
        self.commands = config.build_commands()

        self.terminal = terminal if terminal is not None else TerminalController()
        self.runner = runner if runner is not None else SubprocessRunner(self.terminal, output=output)
        self.queue = RunQueue(self.commands, self.runner)
        self.worker = ExecutionWorker(
            self.queue,
            policy=config.policy,
            event_factory=event_factory,
            on_result=self._on_result,
        )
        self.dispatcher = ChangeDispatcher(self.patterns, self.worker.submit)
        self.file_watcher = FileWatcherManager(self.dispatcher, observer=observer)
        self.keyboard = KeyboardHandler(self)
        self._started = False

        # Outbound events (host wires these)
        self.on_run_finished: Callable[[TriggerSource, QueueResult], None] | None = None

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Schedule the watches, enter raw mode and start the worker.

        Raises:
            UsageError: If a watched directory does not exist
        """
        if self._started:
            return

        for watcher_config in self.config.watcher_configs():
            try:
                self.file_watcher.add_watch(watcher_config)
            except NotADirectoryError as e:
                raise UsageError(str(e)) from e

        self.terminal.init()
        self._started = True
        try:
            self.worker.start()
            self.file_watcher.start()
        except Exception:
            self.stop()
            raise
        logger.info("Quit with 'q', rerun all commands with 'r'...")

    def stop(self) -> None:
        """Stop watching, cancel any run and restore the terminal."""
        if not self._started:
            return
        self._started = False
        try:
            self.file_watcher.stop()
        except Exception as e:
            logger.error(f"Error stopping file watcher: {e}")
        try:
            self.worker.stop()
        finally:
            self.terminal.deinit()

    def run(self) -> int:
        """Run the keyboard loop until 'q' or end of input.

        Returns:
            Exit code (0)
        """
        self.start()
        try:
            while True:
                key = self.terminal.get_char()
                if not key:
                    logger.debug("End of input, quitting")
                    break
                if not self.keyboard.handle(key):
                    break
        finally:
            self.stop()
        return 0

    def request_run(self) -> None:
        """Rerun every command (sync-safe, returns immediately)."""
        self.worker.submit(TriggerSource.manual())

    def _on_result(self, source: TriggerSource, result: QueueResult) -> None:
        logger.debug(f"{source.get_semantic_summary()}: {result.describe()}")
        if self.on_run_finished is not None:
            self.on_run_finished(source, result)
