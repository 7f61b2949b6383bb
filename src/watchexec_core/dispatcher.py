"""Turns matching filesystem changes into run triggers."""

import logging
from collections.abc import Callable

from watchexec_core.models import TriggerSource, WatchAction, WatchEvent
from watchexec_core.patterns import PatternSet

logger = logging.getLogger(__name__)


class ChangeDispatcher:
    """Filters watch events against the configured patterns.

    Every matching event is logged and fires the trigger callable once; there
    is no coalescing of bursts.
    """

    def __init__(self, patterns: PatternSet, trigger: Callable[[TriggerSource], None]):
        """Initialize dispatcher.

        Args:
            patterns: Compiled patterns (empty set matches every path)
            trigger: Called with a TriggerSource for every matching event
        """
        self.patterns = patterns
        self.trigger = trigger

    def matches(self, event: WatchEvent) -> bool:
        """Whether the event's path (or, for moves, either path) matches."""
        if event.action is WatchAction.MOVED:
            return self.patterns.matches(event.old_path, event.path)
        return self.patterns.matches(event.path)

    def on_event(self, event: WatchEvent) -> bool:
        """Handle one change.

        Returns:
            True if the event matched and a run was triggered
        """
        if not self.matches(event):
            logger.debug(f"Ignoring {event.describe()}")
            return False

        logger.info(f"{event.describe()}...")
        self.trigger(TriggerSource.from_event(event))
        return True
