"""watchexec-core: trigger-execute pipeline for watch-exec."""

__version__ = "1.2.0"

# Models
# Config
from watchexec_core.config import ConfigError, UsageError, WatchExecConfig, load_config

# Pipeline
from watchexec_core.dispatcher import ChangeDispatcher
from watchexec_core.events import create_event
from watchexec_core.file_watcher import FileWatcherManager
from watchexec_core.models import (
    Command,
    ExecResult,
    QueueResult,
    SessionState,
    StopReason,
    TriggerSource,
    WatchAction,
    WatchEvent,
)
from watchexec_core.patterns import (
    Pattern,
    PatternCompileError,
    PatternMode,
    PatternSet,
    PatternSpec,
    compile_pattern,
)
from watchexec_core.run_queue import ExecutionWorker, RunQueue
from watchexec_core.subproc import ProcessLaunchError, SubprocessRunner

# Terminal
from watchexec_core.terminal import TerminalController, TerminalError, TermMode

__all__ = [
    "__version__",
    # Models
    "Command",
    "ExecResult",
    "QueueResult",
    "SessionState",
    "StopReason",
    "TriggerSource",
    "WatchAction",
    "WatchEvent",
    # Patterns
    "Pattern",
    "PatternCompileError",
    "PatternMode",
    "PatternSet",
    "PatternSpec",
    "compile_pattern",
    # Pipeline
    "ChangeDispatcher",
    "ExecutionWorker",
    "FileWatcherManager",
    "ProcessLaunchError",
    "RunQueue",
    "SubprocessRunner",
    "create_event",
    # Terminal
    "TermMode",
    "TerminalController",
    "TerminalError",
    # Config
    "ConfigError",
    "UsageError",
    "WatchExecConfig",
    "load_config",
]
