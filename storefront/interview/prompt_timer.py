"""
Delayed guided-selection invitation.

After the shopper has been looking at a context (search term or category) for
a few seconds, the "need help choosing?" prompt becomes visible. The timer only
flips the visible flag; it never starts a guided selection itself. Changing
the context cancels the pending timer and hides the prompt.
"""
import asyncio
from typing import Optional

from storefront.utils.logger import get_logger

logger = get_logger("interview.prompt_timer")


class QuizPromptTimer:
    def __init__(self, delay_seconds: float = 3.0):
        self.delay_seconds = delay_seconds
        self.visible = False
        self.context: Optional[str] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    def on_context_change(self, context: Optional[str]) -> None:
        """Hide the prompt and re-arm the timer for the new context (if any)."""
        self.cancel()
        self.context = context
        if not context:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (e.g. sync callers); the prompt just stays hidden
            logger.debug("No running event loop; quiz prompt not scheduled")
            return
        self._handle = loop.call_later(self.delay_seconds, self._show)

    def _show(self) -> None:
        self._handle = None
        self.visible = True
        logger.debug(f"Quiz prompt visible for '{self.context}'")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.visible = False
