"""
Scheduled keep-alive tasks owned by a call.

FallbackAudioPump feeds filler audio to the telephony leg until the agent's first
real audio arrives, so the carrier never sees a media gap long enough to drop the
call. Heartbeat sends a low-frequency application-level marker for the life of
the call. Both are asyncio tasks that are started once and stopped once.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from callbridge.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class FallbackAudioPump:
    """
    Periodically emits a fixed filler buffer until stopped.

    stop() is synchronous and permanent. If a filler send is in progress when
    stop() is called it completes; no further filler is sent afterwards.
    """

    def __init__(self, send_filler: Callable[[bytes], Awaitable[bool]],
                 filler: bytes, interval: float):
        self._send_filler = send_filler
        self._filler = filler
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stopped = False
        self._sleeping = False
        self.frames_sent = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        if self._stopped or self._task is not None:
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        """Stop the pump for good."""
        if self._stopped:
            return
        self._stopped = True
        if self._task and self._sleeping:
            self._task.cancel()

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        logger.debug("Fallback audio pump started")
        try:
            while not self._stopped:
                if await self._send_filler(self._filler):
                    self.frames_sent += 1
                if self._stopped:
                    break
                self._sleeping = True
                try:
                    await asyncio.sleep(self._interval)
                finally:
                    self._sleeping = False
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Fallback audio pump stopped after send failure: {e}")
        logger.debug(f"Fallback audio pump exited after {self.frames_sent} fillers")


class Heartbeat:
    """Calls beat() every interval seconds until stopped."""

    def __init__(self, beat: Callable[[], Awaitable[None]], interval: float):
        self._beat = beat
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self.beats = 0

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._beat()
                self.beats += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Heartbeat failed: {e}")
