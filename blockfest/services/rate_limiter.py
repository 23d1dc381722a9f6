"""
Sliding-window limiter for VIP check attempts.
"""

import time
from collections import deque
from typing import Callable, Deque, Dict


class AttemptLimiter:
    """Caps VIP list probes per authenticated user so the allowlist can't be enumerated"""

    def __init__(self, max_attempts: int = 10, window_seconds: int = 60,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            max_attempts: attempts allowed per window
            window_seconds: length of the sliding window
            clock: time source, overridable in tests
        """
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock
        self.attempts: Dict[str, Deque[float]] = {}

    def _prune(self, key: str, now: float) -> Deque[float]:
        history = self.attempts.get(key)
        if history is None:
            return deque()
        while history and history[0] <= now - self.window_seconds:
            history.popleft()
        if not history:
            del self.attempts[key]
        return history

    def is_allowed(self, key: str) -> bool:
        """Record an attempt for key; False once the window is full"""
        now = self.clock()
        history = self._prune(key, now)
        if len(history) >= self.max_attempts:
            return False
        history.append(now)
        self.attempts[key] = history
        return True

    def reset_time(self, key: str) -> float:
        history = self._prune(key, self.clock())
        if not history:
            return self.clock()
        return history[0] + self.window_seconds
