import asyncio
from collections.abc import Callable
from threading import Event
from threading import Lock

from pydantic import PrivateAttr

from imbue.simple_wait.errors import WaitCancelledError
from imbue.simple_wait.models import MutableModel


class CancellationToken(MutableModel):
    """A one-shot cancellation signal that can be observed from blocking and async code.

    cancel() may be called from any thread. Blocking waiters are woken through the
    underlying threading.Event; async sleepers are woken on their own event loop via
    call_soon_threadsafe.
    """

    _event: Event = PrivateAttr(default_factory=Event)
    _lock: Lock = PrivateAttr(default_factory=Lock)
    _wakeups: list[Callable[[], None]] = PrivateAttr(default_factory=list)

    @classmethod
    def build(cls) -> "CancellationToken":
        return cls()

    @classmethod
    def never(cls) -> "CancellationToken":
        """Return a token that nobody else holds, so it can never be cancelled."""
        return cls()

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            wakeups = list(self._wakeups)
            self._wakeups.clear()
        for wakeup in wakeups:
            wakeup()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise WaitCancelledError("Wait was cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block for up to timeout seconds, returning early (with True) if the token is cancelled."""
        return self._event.wait(timeout=timeout)

    async def sleep(self, seconds: float) -> None:
        """Suspend for the given number of seconds.

        Raises WaitCancelledError if the token is cancelled before or during the delay.
        """
        loop = asyncio.get_running_loop()
        woken: asyncio.Future[None] = loop.create_future()

        def resolve() -> None:
            if not woken.done():
                woken.set_result(None)

        def wakeup() -> None:
            loop.call_soon_threadsafe(resolve)

        with self._lock:
            self.raise_if_cancelled()
            self._wakeups.append(wakeup)
        try:
            await asyncio.wait({woken}, timeout=seconds)
        finally:
            with self._lock:
                if wakeup in self._wakeups:
                    self._wakeups.remove(wakeup)
            if not woken.done():
                woken.cancel()
        self.raise_if_cancelled()
