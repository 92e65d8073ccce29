"""
Политика повторов для сетевых вызовов.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_backoff(base: float) -> Callable[[int], float]:
    """Задержка base * 2^(attempt-1) перед повтором номер attempt (1, 2, ...)."""
    def _delay(attempt: int) -> float:
        return base * (2 ** (attempt - 1))
    return _delay


@dataclass
class RetryPolicy:
    """
    Ограниченная политика повторов.

    Повторяются только исключения из retry_on; все остальные пробрасываются
    сразу, без повторов (повторять заведомо неверный запрос бессмысленно).

    Attributes:
        max_attempts: Общее количество попыток (1 = без повторов)
        backoff: Функция номер_повтора -> задержка в секундах
        retry_on: Типы исключений, при которых делается повтор
    """
    max_attempts: int = 2
    backoff: Callable[[int], float] = field(default_factory=lambda: exponential_backoff(0.5))
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(self, call: Callable[[int], Awaitable[T]]) -> T:
        """
        Выполняет call(attempt) с повторами.

        Номер попытки (начиная с 0) передаётся в call, чтобы вызывающий код
        мог, например, переключиться на запасной endpoint.
        """
        attempts = max(self.max_attempts, 1)
        for attempt in range(attempts):
            try:
                return await call(attempt)
            except self.retry_on as exc:
                if attempt + 1 >= attempts:
                    raise
                delay = self.backoff(attempt + 1)
                logger.warning(
                    "Попытка %s/%s не удалась (%s: %s), повтор через %.2f сек",
                    attempt + 1, attempts, exc.__class__.__name__, exc, delay,
                )
                if delay > 0:
                    await self.sleep(delay)
        raise RuntimeError("unreachable")
