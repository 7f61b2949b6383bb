"""Shared data models for watchexec_core."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class WatchAction(Enum):
    """Kind of filesystem change reported by a watcher."""

    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    MOVED = "moved"


@dataclass(frozen=True)
class WatchEvent:
    """One filesystem change, as delivered by the watcher collaborator."""

    action: WatchAction
    """What happened to the path."""

    root: str
    """Watched directory, as configured."""

    path: str
    """Changed path relative to root (forward slashes). The new path for moves."""

    old_path: str | None = None
    """Previous path relative to root, only set for MOVED."""

    @property
    def display_path(self) -> str:
        """Root joined with the primary path, for log lines."""
        return os.path.join(self.root, self.path)

    @property
    def display_old_path(self) -> str | None:
        """Root joined with the old path, for log lines."""
        if self.old_path is None:
            return None
        return os.path.join(self.root, self.old_path)

    def describe(self) -> str:
        """Human readable one-liner, e.g. ``Modified ./src/foo.c``."""
        if self.action is WatchAction.CREATED:
            return f"Created {self.display_path}"
        elif self.action is WatchAction.DELETED:
            return f"Deleted {self.display_path}"
        elif self.action is WatchAction.MOVED:
            return f"Renamed {self.display_old_path} to {self.display_path}"
        return f"Modified {self.display_path}"


@dataclass(frozen=True)
class Command:
    """A configured command: the display string plus its argv tokens."""

    display: str
    """Command string as the user wrote it."""

    argv: tuple[str, ...]
    """Whitespace separated tokens, program name first."""

    @classmethod
    def parse(cls, text: str) -> "Command":
        """Build a Command by whitespace-tokenizing a command string.

        Args:
            text: Command string, e.g. ``"make -j4 test"``

        Returns:
            Command with argv ``("make", "-j4", "test")``. An all-whitespace
            string yields an empty argv, which the runner refuses to launch.
        """
        return cls(display=text, argv=tuple(text.split()))

    def __str__(self) -> str:
        return self.display


@dataclass
class TriggerSource:
    """Represents what caused the run queue to execute."""

    kind: Literal["manual", "file"]
    """Manual keypress or filesystem change."""

    description: str = ""
    """Short description (e.g. the event line) for logs."""

    @classmethod
    def manual(cls) -> "TriggerSource":
        return cls(kind="manual", description="manual rerun")

    @classmethod
    def from_event(cls, event: WatchEvent) -> "TriggerSource":
        return cls(kind="file", description=event.describe())

    def get_semantic_summary(self) -> str:
        """Get human-readable summary of the trigger.

        Returns:
            "Ran manually" or "Ran automatically (file change)"
        """
        if self.kind == "file":
            return "Ran automatically (file change)"
        return "Ran manually"


class SessionState(Enum):
    """Lifecycle of one ExecutionSession.

    NOT_STARTED -> RUNNING -> COMPLETED | TERMINATED_BY_REQUEST, or
    NOT_STARTED -> FAILED_TO_START. The last three are terminal.
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    TERMINATED_BY_REQUEST = "terminated_by_request"
    FAILED_TO_START = "failed_to_start"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionState.COMPLETED,
            SessionState.TERMINATED_BY_REQUEST,
            SessionState.FAILED_TO_START,
        )


@dataclass(frozen=True)
class ExecResult:
    """What SubprocessRunner.exec() reports for one command."""

    exit_code: int = 0
    """Exit code of the child; only meaningful when finished is True."""

    finished: bool = False
    """False when the command could not be launched or its I/O failed."""

    output: bytes = b""
    """Captured combined stdout/stderr."""

    state: SessionState = SessionState.NOT_STARTED
    """Terminal state of the session that produced this result."""

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED_BY_REQUEST


@dataclass
class CommandOutcome:
    """Result of one command inside a queue run."""

    index: int
    command: Command
    result: ExecResult


class StopReason(Enum):
    """Why a queue run stopped before the last command."""

    LAUNCH_FAILED = "launch_failed"
    NON_ZERO_EXIT = "non_zero_exit"
    CANCELLED = "cancelled"


@dataclass
class QueueResult:
    """Outcome of one RunQueue.execute() call.

    Either every command succeeded (``stopped_at is None``) or the run stopped
    at ``stopped_at`` for ``reason``.
    """

    stopped_at: int | None = None
    """Index of the command that stopped the run."""

    reason: StopReason | None = None
    """Why the run stopped."""

    exit_code: int | None = None
    """Exit code of the failing command, for NON_ZERO_EXIT."""

    outcomes: list[CommandOutcome] = field(default_factory=list)
    """Per-command results, in execution order."""

    @property
    def succeeded(self) -> bool:
        return self.stopped_at is None

    def classifications(self) -> list[str]:
        """Per-command classification strings (``ok``/``exit:N``/...)."""
        labels = []
        for outcome in self.outcomes:
            result = outcome.result
            if result.terminated:
                labels.append("cancelled")
            elif not result.finished:
                labels.append("launch_failed")
            elif result.exit_code:
                labels.append(f"exit:{result.exit_code}")
            else:
                labels.append("ok")
        return labels

    def describe(self) -> str:
        if self.succeeded:
            return "all commands succeeded"
        if self.reason is StopReason.NON_ZERO_EXIT:
            return f"stopped at command {self.stopped_at} (exit code {self.exit_code})"
        return f"stopped at command {self.stopped_at} ({self.reason.value})"
