"""
Иерархия исключений бота.

Все ошибки конвейера (ссылка → товар → партнёрская ссылка → сообщение)
наследуются от BotError и перехватываются на уровне обработчиков Telegram.
"""

from __future__ import annotations


class BotError(Exception):
    """Базовое исключение бота."""


class ConfigError(BotError):
    """Не заданы обязательные настройки. Процесс не должен стартовать."""


class NotResolvable(BotError):
    """Из ссылки не удалось получить ID товара ни одним из способов."""

    def __init__(self, reference: str, reason: str = ""):
        self.reference = reference
        self.reason = reason
        message = f"Не удалось определить ID товара: {reference}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class UpstreamTimeout(BotError):
    """Сетевой вызов не уложился в таймаут или соединение не установлено."""


class UpstreamError(BotError):
    """AliExpress API вернул код ошибки."""

    def __init__(self, code: str | int | None, message: str = ""):
        self.code = str(code) if code is not None else ""
        self.message = message or ""
        super().__init__(f"AliExpress API error {self.code}: {self.message}")

    @property
    def public_reason(self) -> str:
        """Короткое описание ошибки для пользователя (без технических деталей)."""
        text = " ".join(self.message.split())
        return text[:120] if text else "unknown error"


class MalformedResponse(UpstreamError):
    """Ответ API не соответствует ожидаемой структуре."""

    def __init__(self, message: str, payload: object = None):
        self.payload = payload
        super().__init__("malformed_response", message)


class IncompleteProductError(BotError, ValueError):
    """У товара нет обязательных полей (название, цена) для сообщения."""
