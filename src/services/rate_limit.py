"""
Ограничение частоты запросов к AliExpress API (token bucket).

Один экземпляр разделяется всеми исходящими вызовами клиента: конкурентные
обработчики ждут (await), пока в ведре не появится токен.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class TokenBucketLimiter:
    """
    Token bucket с постоянной скоростью пополнения.

    Args:
        rate: Токенов в секунду (например, 1.0 — не чаще раза в секунду)
        capacity: Размер ведра (допустимый всплеск)
        clock: Источник монотонного времени (подменяется в тестах)
        sleep: Корутина ожидания (подменяется в тестах)
    """

    def __init__(
        self,
        rate: float = 1.0,
        capacity: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate должен быть положительным")
        self.rate = float(rate)
        self.capacity = max(float(capacity), 1.0)
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(now - self._updated_at, 0.0)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated_at = now

    async def acquire(self) -> None:
        """Забирает один токен, при необходимости ожидая его появления."""
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                wait_time = (1.0 - self._tokens) / self.rate
                logger.debug("Rate limiting: ждём %.3f сек", wait_time)
                await self._sleep(wait_time)
                self._refill()
                # Ожидание могло оказаться короче из-за точности таймера
                self._tokens = max(self._tokens, 1.0)
            self._tokens -= 1.0
