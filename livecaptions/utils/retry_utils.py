"""
Shared retry utilities for the Live Captions relay.
"""

from typing import Optional


class RetryUtils:
    """Shared retry utility functions."""

    @staticmethod
    def calculate_backoff_delay(
        attempt: int,
        base_delay: float = 1.0,
        max_delay: Optional[float] = None,
        backoff_factor: float = 2.0,
    ) -> float:
        """
        Calculate delay for exponential backoff.

        Args:
            attempt (int): Current attempt number (1-based)
            base_delay (float): Delay before the first attempt
            max_delay (Optional[float]): Upper bound, or None for no cap
            backoff_factor (float): Factor to multiply delay by

        Returns:
            float: Delay in seconds
        """
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        delay = base_delay * (backoff_factor ** (attempt - 1))
        if max_delay is not None:
            return min(delay, max_delay)
        return delay
