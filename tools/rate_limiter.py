"""
RateLimiter — token bucket in front of every Gemini request.

GeminiModelClient takes one token per attempt (retries included), so the
bucket bounds real provider traffic rather than logical turns.
"""

import time
import asyncio
import logging

logger = logging.getLogger('RateLimiter')


class RateLimiter:
    """Token bucket.

    Holds at most `max_tokens`; refills continuously at `refill_rate`
    tokens per second. `acquire()` sleeps while the bucket is empty.

    Args:
        max_tokens: Burst size (15 suits the Gemini Flash free tier).
        refill_rate: Tokens per second (0.25 = 15 per minute).
        name: Label used in log lines.
    """

    def __init__(self, max_tokens: int = 15, refill_rate: float = 0.25, name: str = "gemini"):
        if max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self.max_tokens = max_tokens
        self.refill_rate = refill_rate
        self.name = name
        self.tokens = float(max_tokens)
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "RateLimiter":
        return cls(
            max_tokens=settings.rate_limit_tokens,
            refill_rate=settings.rate_limit_refill,
            name="gemini",
        )

    def _refill(self):
        now = time.monotonic()
        self.tokens = min(self.max_tokens, self.tokens + (now - self.last_refill) * self.refill_rate)
        self.last_refill = now

    def try_acquire(self) -> bool:
        """Take a token if one is free right now. Never waits."""
        self._refill()
        if self.tokens < 1.0:
            return False
        self.tokens -= 1.0
        return True

    async def acquire(self) -> float:
        """Take a token, sleeping until one is available.

        Returns:
            Seconds spent waiting (0.0 when a token was free).
        """
        async with self._lock:
            self._refill()
            waited = 0.0
            if self.tokens < 1.0:
                waited = (1.0 - self.tokens) / self.refill_rate
                logger.warning(f"[{self.name}] Model quota exhausted, waiting {waited:.1f}s")
                await asyncio.sleep(waited)
                self._refill()
            self.tokens = max(0.0, self.tokens - 1.0)
            return waited

    @property
    def available(self) -> float:
        self._refill()
        return self.tokens


# Process-wide default for clients built without explicit settings.
model_limiter = RateLimiter(max_tokens=15, refill_rate=0.25, name="gemini")
