"""Ordered command execution and the single execution context feeding it.

RunQueue.execute() runs the configured commands in order and stops at the
first one that fails. ExecutionWorker owns the only thread that calls
execute(): triggers from the watcher threads and the keyboard loop are
submitted to it and run one after the other.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable, Sequence
from typing import Literal

from watchexec_core.events import create_event
from watchexec_core.log import log_success
from watchexec_core.models import Command, CommandOutcome, QueueResult, StopReason, TriggerSource
from watchexec_core.subproc import SubprocessRunner

logger = logging.getLogger(__name__)

Policy = Literal["queue", "restart"]
POLICIES: tuple[str, ...] = ("queue", "restart")


class RunQueue:
    """The configured commands, executed strictly in order."""

    def __init__(self, commands: Sequence[Command], runner: SubprocessRunner):
        """Initialize queue.

        Args:
            commands: Commands in execution order
            runner: Runs one command at a time
        """
        self.commands = tuple(commands)
        self.runner = runner
        self._lock = threading.Lock()
        self._cancel: threading.Event | None = None
        self.run_count = 0
        self.last_result: QueueResult | None = None

    def __len__(self) -> int:
        return len(self.commands)

    def execute(self, cancel: threading.Event | None = None) -> QueueResult:
        """Run every command, stopping at the first failure.

        Only one execute() runs at a time; a concurrent caller blocks until
        the in-flight run completes.

        Args:
            cancel: Cancel token owned by this run. Setting it, even before
                execute() starts, stops the run before its next command.
                Default: a fresh token reachable through cancel().

        Returns:
            QueueResult describing where (if anywhere) the run stopped
        """
        token = cancel if cancel is not None else threading.Event()
        with self._lock:
            self._cancel = token
            try:
                return self._execute(token)
            finally:
                self._cancel = None

    def _execute(self, token: threading.Event) -> QueueResult:
        self.run_count += 1
        result = QueueResult()

        for index, command in enumerate(self.commands):
            if token.is_set():
                logger.warning("Run cancelled")
                self._stop(result, index, StopReason.CANCELLED)
                break

            outcome = self.runner.exec(command.argv, command.display)
            result.outcomes.append(CommandOutcome(index=index, command=command, result=outcome))

            # A cancel can land before the runner has registered the child
            if outcome.terminated or token.is_set():
                logger.warning(f"'{command}' was cancelled")
                self._stop(result, index, StopReason.CANCELLED)
                break
            elif not outcome.finished:
                logger.error(f"'{command}' couldn't be executed properly")
                self._stop(result, index, StopReason.LAUNCH_FAILED)
                break
            elif outcome.exit_code != 0:
                logger.warning(f"'{command}' failed with exit code {outcome.exit_code}")
                self._stop(result, index, StopReason.NON_ZERO_EXIT, outcome.exit_code)
                break

            log_success(logger, f"'{command}' ran successfully")

        self.last_result = result
        return result

    def cancel(self) -> bool:
        """Stop the in-flight run: kill the running command, skip the rest.

        Returns:
            True if a command was running
        """
        token = self._cancel
        if token is not None:
            token.set()
        return self.runner.terminate()

    @staticmethod
    def _stop(result: QueueResult, index: int, reason: StopReason, exit_code: int | None = None) -> None:
        result.stopped_at = index
        result.reason = reason
        result.exit_code = exit_code


class ExecutionWorker:
    """Single consumer thread for run triggers.

    Policies:
        "queue": every submitted trigger runs once, in submission order,
            after the in-flight run completes.
        "restart": a new trigger cancels the in-flight run and replaces any
            waiting triggers, so exactly one fresh run follows.
    """

    def __init__(
        self,
        queue: RunQueue,
        policy: Policy = "queue",
        event_factory: Callable = create_event,
        on_result: Callable[[TriggerSource, QueueResult], None] | None = None,
    ):
        """Initialize worker.

        Args:
            queue: The run queue to execute
            policy: "queue" or "restart"
            event_factory: Creates the wakeup event (default: create_event)
            on_result: Optional callback invoked after every run
        """
        if policy not in POLICIES:
            raise ValueError(f"Unknown policy '{policy}', expected one of {', '.join(POLICIES)}")

        self.queue = queue
        self.policy = policy
        self.on_result = on_result
        self._event_factory = event_factory
        self._event = None
        self._cond = threading.Condition()
        self._pending: deque[TriggerSource] = deque()
        self._active: TriggerSource | None = None
        self._active_cancel = threading.Event()
        self._stopping = False
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def busy(self) -> bool:
        """Whether a run is in progress or waiting."""
        with self._cond:
            return self._active is not None or bool(self._pending)

    def start(self) -> None:
        """Create the wakeup event and start the worker thread."""
        if self.running:
            return
        self._stopping = False
        self._event = self._event_factory()
        self._thread = threading.Thread(target=self._loop, name="watch-exec-worker", daemon=True)
        self._thread.start()
        logger.debug(f"Execution worker started (policy: {self.policy})")

    def submit(self, source: TriggerSource) -> None:
        """Request a run. Never blocks on the run itself.

        Args:
            source: What caused the run
        """
        with self._cond:
            if self._stopping or self._event is None:
                logger.debug(f"Ignoring trigger after shutdown: {source.description}")
                return
            if self.policy == "restart":
                self._pending.clear()
                if self._active is not None:
                    logger.debug(f"Restarting run for: {source.description}")
                    self._cancel_active()
            self._pending.append(source)
            self._event.send()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no run is in progress or waiting.

        Returns:
            False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: self._active is None and not self._pending, timeout=timeout
            )

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel any run, drop waiting triggers and join the thread."""
        with self._cond:
            self._stopping = True
            self._pending.clear()
            if self._active is not None:
                self._cancel_active()
            self._cond.notify_all()

        if self._event is None:
            return
        self._event.send()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Execution worker did not stop in time")
                return
            self._thread = None
        self._event.close()
        self._event = None

    def _cancel_active(self) -> None:
        # Caller holds self._cond. The token also reaches a run that has not
        # entered RunQueue.execute() yet.
        self._active_cancel.set()
        self.queue.cancel()

    def _next(self) -> TriggerSource | None:
        with self._cond:
            if self._stopping or not self._pending:
                self._active = None
                self._cond.notify_all()
                return None
            self._active = self._pending.popleft()
            self._active_cancel = threading.Event()
            return self._active

    def _loop(self) -> None:
        while not self._stopping:
            self._event.wait()
            while (source := self._next()) is not None:
                logger.debug(f"Run triggered: {source.description}")
                try:
                    result = self.queue.execute(cancel=self._active_cancel)
                except Exception:
                    logger.exception("Unexpected error while running commands")
                    continue
                if self.on_result is not None:
                    try:
                        self.on_result(source, result)
                    except Exception:
                        logger.exception("Error in run result callback")
