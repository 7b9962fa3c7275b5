"""
Bounded exponential backoff for re-establishing a dropped link.

The same manager drives both the relay-to-provider link and the capture-side
client-to-relay link. The delay before attempt n is
``base_delay * backoff_factor ** (n - 1)``; with the defaults that is
1, 2, 4, 8 and 16 seconds. After max_attempts consecutive failures the loss
is terminal.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import ReconnectConfig
from livecaptions.utils.retry_utils import RetryUtils

logger = configure_logging("reconnection_manager")

ConnectFn = Callable[[], Awaitable[object]]
ActiveFn = Callable[[], bool]
AttemptCallback = Callable[[int, float], Awaitable[None]]


class ReconnectionManager:
    """Tracks reconnection attempts and applies the backoff schedule."""

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        backoff_factor: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "link",
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.name = name
        self._sleep = sleep
        self.attempts = 0
        self.history: List[float] = []

    @classmethod
    def from_config(
        cls,
        config: ReconnectConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "link",
    ) -> "ReconnectionManager":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            backoff_factor=config.backoff_factor,
            sleep=sleep,
            name=name,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before the given 1-based attempt."""
        return RetryUtils.calculate_backoff_delay(
            attempt, self.base_delay, backoff_factor=self.backoff_factor
        )

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def reset(self) -> None:
        """Reset the attempt counter once the link is open again."""
        if self.attempts:
            logger.info(f"{self.name}: reconnection counter reset after {self.attempts} attempt(s)")
        self.attempts = 0

    async def reconnect(
        self,
        connect: ConnectFn,
        is_active: ActiveFn,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> bool:
        """
        Retry ``connect`` until it succeeds, the owner goes inactive, or the
        attempts run out.

        Args:
            connect: Coroutine function that raises on failure
            is_active: Returns False once the owner no longer wants the link
            on_attempt: Awaited with (attempt, delay) before each wait

        Returns:
            bool: True if the link was re-established, False otherwise
        """
        while self.attempts < self.max_attempts:
            if not is_active():
                logger.info(f"{self.name}: owner inactive, abandoning reconnection")
                return False

            self.attempts += 1
            delay = self.delay_for(self.attempts)
            self.history.append(delay)
            logger.info(
                f"{self.name}: reconnection attempt {self.attempts}/{self.max_attempts} in {delay}s"
            )
            if on_attempt is not None:
                await on_attempt(self.attempts, delay)

            await self._sleep(delay)

            if not is_active():
                logger.info(f"{self.name}: owner inactive, abandoning reconnection")
                return False

            try:
                await connect()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    f"{self.name}: reconnection attempt {self.attempts} failed: {e}"
                )
                continue

            logger.info(f"{self.name}: reconnected after {self.attempts} attempt(s)")
            self.reset()
            return True

        logger.error(
            f"{self.name}: max reconnection attempts ({self.max_attempts}) reached"
        )
        return False
