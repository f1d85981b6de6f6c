"""
Retry budget for outbound service calls.
"""

from dataclasses import dataclass


@dataclass
class RetryBudget:
    """
    Bounded attempt/delay policy for a single outbound call.

    Created per call and discarded once the call resolves. With the
    default multiplier of 1.0 the delay grows linearly
    (base_delay * attempt); a multiplier above 1.0 switches to
    exponential backoff (base_delay * multiplier ** (attempt - 1)).
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 1.0
    attempt: int = 0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    @property
    def exhausted(self) -> bool:
        """True once every allowed attempt has been used."""
        return self.attempt >= self.max_attempts

    @property
    def remaining(self) -> int:
        return max(0, self.max_attempts - self.attempt)

    def consume(self) -> int:
        """
        Start the next attempt.

        Returns:
            The 1-based number of the attempt being started.

        Raises:
            RuntimeError: If the budget is already exhausted.
        """
        if self.exhausted:
            raise RuntimeError("Retry budget exhausted")
        self.attempt += 1
        return self.attempt

    def delay(self) -> float:
        """Seconds to wait after the current attempt before the next one."""
        if self.attempt == 0:
            return 0.0
        if self.multiplier <= 1.0:
            return self.base_delay * self.attempt
        return self.base_delay * self.multiplier ** (self.attempt - 1)
