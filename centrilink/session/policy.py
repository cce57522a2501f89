"""Reconnection delay policy."""

import random
from dataclasses import dataclass

from ..mechanism import ReconnectReason


@dataclass
class ReconnectPolicy:
    """Configurable reconnect behaviour for a session.

    Attributes:
        base_delay: Delay after the first failure, in seconds.
        backoff_factor: Multiplier for exponential backoff.
        max_delay: Upper bound of the exponential curve, in seconds.
        refresh_delay: Fixed delay after a forced periodic refresh.
        jitter: Randomization factor (0.0-1.0). The default of 0 keeps the
            curve non-decreasing.
        max_retries: Maximum number of consecutive failures. None means
            infinite retries.
    """

    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    refresh_delay: float = 2.0
    jitter: float = 0.0
    max_retries: int | None = None  # None = infinite

    def get_delay(
        self,
        attempt: int,
        reason: ReconnectReason = ReconnectReason.TRANSPORT_ERROR,
    ) -> float:
        """Calculate the wait before the next connection attempt.

        ``attempt`` is the number of consecutive failures that preceded the
        one being handled (0 for the first failure). It is supplied by the
        session and never mutated here.

        delay = min(base_delay * (backoff_factor ^ attempt), max_delay) +/- jitter
        """
        if reason is ReconnectReason.FORCED_REFRESH:
            return self.refresh_delay

        delay = min(self.base_delay * (self.backoff_factor**attempt), self.max_delay)
        if not self.jitter:
            return delay
        jitter_range = delay * self.jitter
        return min(
            self.max_delay, delay + random.uniform(-jitter_range, jitter_range)
        )

    def exhausted(self, attempt: int) -> bool:
        """Whether ``attempt`` consecutive failures exceed ``max_retries``."""
        return self.max_retries is not None and attempt >= self.max_retries
