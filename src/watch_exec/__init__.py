"""watch-exec: run commands whenever watched files change."""

__version__ = "1.2.0"

# Public API
from watch_exec.controller import WatchExecController

__all__ = [
    "__version__",
    "WatchExecController",
]
