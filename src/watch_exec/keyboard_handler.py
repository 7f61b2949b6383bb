"""Runtime keyboard protocol: 'q' quits, 'r' reruns every command."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

# key -> (action name, description for the help line)
DEFAULT_BINDINGS: dict[str, tuple[str, str]] = {
    "q": ("quit", "quit the program"),
    "r": ("rerun", "rerun all commands immediately"),
}


class KeyboardHandler:
    """Maps single keystrokes to controller actions.

    Keys are folded to lowercase, so 'Q' and 'R' work too. Unbound keys are
    ignored.
    """

    def __init__(self, controller, bindings: dict[str, tuple[str, str]] | None = None):
        """Initialize keyboard handler.

        Args:
            controller: WatchExecController (needs request_run())
            bindings: Optional override of DEFAULT_BINDINGS
        """
        self.controller = controller
        self.bindings = dict(bindings if bindings is not None else DEFAULT_BINDINGS)
        self.callbacks: dict[str, Callable[[], bool]] = {
            key: self._create_callback(action) for key, (action, _) in self.bindings.items()
        }

    def _create_callback(self, action: str) -> Callable[[], bool]:
        """Callback for an action; returns False when the input loop should end."""
        if action == "quit":
            return lambda: False

        if action == "rerun":

            def callback() -> bool:
                self.controller.request_run()
                return True

            return callback

        raise ValueError(f"Unknown keyboard action: {action}")

    def handle(self, key: bytes | str) -> bool:
        """Process one keystroke.

        Args:
            key: One byte (or character) read from the terminal

        Returns:
            False if the program should quit, True otherwise
        """
        if isinstance(key, bytes):
            key = key.decode("latin-1")
        callback = self.callbacks.get(key.lower())
        if callback is None:
            return True
        return callback()

    def get_binding_help(self) -> str:
        """One line per binding, e.g. ``- 'q': quit the program``."""
        return "\n".join(f"- '{key}': {description}" for key, (_, description) in self.bindings.items())
