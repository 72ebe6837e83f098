"""Sentinel-based clipboard capture and paste-back."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable

from textpolish.ports import AutomationPort, CaptureSurface

logger = logging.getLogger("capture")

SENTINEL_PREFIX = "TEXTPOLISH_COPY_SENTINEL_"

Sleep = Callable[[float], Awaitable[None]]


class TextCaptureService:
    """Copies the focused selection out through the capture surface.

    A fresh random sentinel is written before every copy so a stale value
    already on the surface is never mistaken for the copied text.
    """

    def __init__(
        self,
        surface: CaptureSurface,
        automation: AutomationPort,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._surface = surface
        self._automation = automation
        self._sleep = sleep

    async def capture(self, timeout: float, settle_seconds: float = 0.02) -> str:
        """Trigger copy and return the copied text.

        Raises:
            NoChangeError: Nothing was copied before ``timeout``.
            NoStringError: Something was copied but it was not text.
        """
        sentinel = f"{SENTINEL_PREFIX}{uuid.uuid4().hex}"
        self._surface.set_string(sentinel)
        await self._sleep(max(0.0, settle_seconds))

        revision = self._surface.revision_count
        self._automation.trigger_copy()
        text = await self._surface.capture(after=revision, excluding=sentinel, timeout=timeout)

        logger.debug(
            "Text captured",
            extra={"service": "capture", "metadata": {"length": len(text)}},
        )
        return text


class TextInjectionService:
    """Writes corrected text to the capture surface and pastes it."""

    def __init__(
        self,
        surface: CaptureSurface,
        automation: AutomationPort,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._surface = surface
        self._automation = automation
        self._sleep = sleep

    async def inject(self, text: str, settle_seconds: float = 0.025, post_paste_seconds: float = 0.18) -> None:
        self._surface.set_string(text)
        await self._sleep(max(0.0, settle_seconds))
        self._automation.trigger_paste()
        await self._sleep(max(0.0, post_paste_seconds))
        logger.debug(
            "Text injected",
            extra={"service": "capture", "metadata": {"length": len(text)}},
        )
