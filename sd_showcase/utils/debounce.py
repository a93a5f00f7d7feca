"""
Module: sd_showcase.utils.debounce
Purpose: Quiescence-based task scheduling on asyncio

A Debouncer runs its callback once the trigger has been quiet for `wait`
seconds. Every new trigger cancels the pending run and reschedules it.
A failure in a timer-started run is kept and raised by the next flush().
"""

from typing import Any, Awaitable, Callable, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delay a coroutine callback until input stops arriving.

    Must be used from inside a running event loop.

    Example:
        >>> debouncer = Debouncer(1.0, speak)
        >>> debouncer.trigger("partial text")
        >>> debouncer.trigger("partial text, more")  # first call is dropped
        >>> await debouncer.flush()  # runs speak("partial text, more") now
    """

    def __init__(self, wait: float, callback: Callable[..., Awaitable[Any]]):
        self.wait = wait
        self.callback = callback
        self._task: Optional[asyncio.Task] = None
        self._pending_args: Optional[tuple] = None
        self._failure: Optional[Exception] = None

    @property
    def pending(self) -> bool:
        """True while a run is scheduled but has not started."""
        return self._pending_args is not None

    def trigger(self, *args: Any) -> None:
        """Schedule the callback with these arguments, replacing any pending run."""
        self.cancel()
        self._pending_args = args
        self._task = asyncio.ensure_future(self._run_later(args))

    async def _run_later(self, args: tuple) -> None:
        await asyncio.sleep(self.wait)
        self._pending_args = None
        try:
            await self.callback(*args)
        except Exception as e:
            logger.error(f"Debounced callback failed: {e}")
            self._failure = e

    def cancel(self) -> None:
        """Drop the pending run, if any."""
        if self._task is not None and self._pending_args is not None:
            self._task.cancel()
        self._pending_args = None

    async def flush(self) -> None:
        """
        Run the pending callback immediately, or wait for a running one.

        Raises:
            Exception: Whatever a timer-started run raised since the last flush
        """
        if self._pending_args is not None:
            args = self._pending_args
            self.cancel()
            await self.callback(*args)
        elif self._task is not None and not self._task.done():
            await self._task

        if self._failure is not None:
            failure, self._failure = self._failure, None
            raise failure


class SpeechDebouncer:
    """
    Debounced speech synthesis for a growing text stream.

    Text identical to the last text that was spoken successfully is skipped.
    """

    def __init__(self, wait: float, speak: Callable[[str], Awaitable[Any]]):
        self.speak = speak
        self.last_processed: Optional[str] = None
        self.debouncer = Debouncer(wait, self._speak_once)

    async def _speak_once(self, text: str) -> None:
        if text == self.last_processed:
            logger.debug("Skipping speech for unchanged text")
            return
        await self.speak(text)
        self.last_processed = text

    def update(self, text: str) -> None:
        """Report the latest text; speech runs after the stream goes quiet."""
        self.debouncer.trigger(text)

    async def flush(self) -> None:
        """Speak the latest text now."""
        await self.debouncer.flush()
