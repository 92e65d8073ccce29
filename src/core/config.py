"""
==============================================================================
ALIEXPRESS DEAL BOT - CONFIGURATION
==============================================================================
Управление конфигурацией через переменные окружения.
Использует Pydantic Settings для валидации и загрузки из .env файла.

Version: 1.0.0
License: MIT
==============================================================================
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.exceptions import ConfigError

# Без этих значений бот не запускается
REQUIRED_FIELDS = (
    "BOT_TOKEN",
    "ALIEXPRESS_APP_KEY",
    "ALIEXPRESS_APP_SECRET",
    "ALIEXPRESS_TRACKING_ID",
    "CHANNEL_ID",
)


class Settings(BaseSettings):
    """
    Класс для управления настройками приложения.

    Автоматически загружает переменные окружения из файла .env
    с валидацией типов и значений по умолчанию.

    Attributes:
        BOT_TOKEN (str): Токен Telegram бота от @BotFather
        ALIEXPRESS_APP_KEY (str): App Key приложения AliExpress Affiliate
        ALIEXPRESS_APP_SECRET (str): App Secret (используется для подписи запросов)
        ALIEXPRESS_TRACKING_ID (str): Tracking ID партнёрской программы
        CHANNEL_ID (str): ID или @username канала для публикации сделок
        ADMIN_CHAT_ID (str): Telegram Chat ID админа для уведомлений об ошибках
        ADMIN_IDS (str): Дополнительные админские Telegram ID через запятую
        ALIEXPRESS_RATE_LIMIT (float): Максимальное количество запросов к API в секунду
        CACHE_TTL (int): Время жизни записей кэша в секундах
        WEBHOOK_URL (str): Публичный URL сервера; пусто = long polling
        DEBUG_MODE (bool): Режим отладки с подробными логами
        DISABLE_SSL_VERIFY (bool): Отключить проверку SSL (не рекомендуется)
    """
    BOT_TOKEN: str = ""  # Токен Telegram бота
    ALIEXPRESS_APP_KEY: str = ""  # App Key AliExpress Open Platform
    ALIEXPRESS_APP_SECRET: str = ""  # App Secret AliExpress Open Platform
    ALIEXPRESS_TRACKING_ID: str = ""  # Tracking ID для партнёрских ссылок
    CHANNEL_ID: str = ""  # Канал, куда публикуются сделки (/post)
    ADMIN_CHAT_ID: str = ""  # ID чата администратора для уведомлений об ошибках (необязательно)
    ADMIN_IDS: str = ""  # Дополнительные админы бота (список Telegram ID через запятую)

    # AliExpress API
    ALIEXPRESS_API_URL: str = "https://api-sg.aliexpress.com/sync"  # Основной региональный endpoint
    ALIEXPRESS_FALLBACK_API_URL: str = "https://api.aliexpress.com/sync"  # Запасной endpoint
    ALIEXPRESS_TIMEOUT: float = 10.0  # Таймаут запросов к API (секунды)
    ALIEXPRESS_RATE_LIMIT: float = 1.0  # Запросов в секунду (общий лимит на все вызовы)
    ALIEXPRESS_RETRY_ATTEMPTS: int = 2  # Всего попыток: основная + запасной endpoint
    ALIEXPRESS_RETRY_BACKOFF: float = 0.5  # Базовая задержка перед повтором (сек), экспоненциальный рост
    TARGET_CURRENCY: str = "USD"  # Валюта цен в ответе API
    TARGET_LANGUAGE: str = "EN"  # Язык названий товаров
    SHIP_TO_COUNTRY: str = "US"  # Страна доставки для цен

    # Кэш ответов API
    CACHE_TTL: int = 1800  # 30 минут
    CACHE_MAX_ENTRIES: int = 5000  # Ограничение размера кэша

    # Разрешение коротких/трекинговых ссылок
    RESOLVE_TIMEOUT: float = 8.0  # Таймаут на раскрытие редиректов (секунды)
    RESOLVE_MAX_REDIRECTS: int = 8  # Максимум переходов по редиректам
    RESOLVE_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )

    # Webhook
    WEBHOOK_URL: str = ""  # Публичный base URL (https://example.com); пусто — long polling
    WEBHOOK_HOST: str = "0.0.0.0"  # Хост локального HTTP-сервера
    WEBHOOK_PORT: int = 3000  # Порт HTTP-сервера
    WEBHOOK_PATH: str = "/webhook"  # Путь, на который Telegram шлёт обновления
    WEBHOOK_SECRET: str = ""  # Секрет для заголовка X-Telegram-Bot-Api-Secret-Token

    LOG_LEVEL: str = "INFO"
    DEBUG_MODE: bool = False  # Режим отладки - показывать подробные логи в консоли
    DISABLE_SSL_VERIFY: bool = False  # Отключить проверку SSL (только если есть проблемы с сертификатами)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra='ignore'  # Игнорировать лишние переменные в .env
    )

    def ensure_required(self) -> None:
        """
        Проверяет, что все обязательные значения заданы.

        Без ключа/секрета подписанные запросы будут молча отклоняться API,
        поэтому процесс не должен стартовать.

        Raises:
            ConfigError: если хотя бы одно обязательное значение пустое
        """
        missing = [name for name in REQUIRED_FIELDS if not str(getattr(self, name) or "").strip()]
        if missing:
            raise ConfigError(f"Не заданы обязательные переменные окружения: {', '.join(missing)}")

    def admin_ids(self) -> set[int]:
        """Возвращает множество Telegram ID администраторов (ADMIN_CHAT_ID + ADMIN_IDS)."""
        result: set[int] = set()
        for raw in [self.ADMIN_CHAT_ID, *self.ADMIN_IDS.split(",")]:
            raw = (raw or "").strip()
            if raw.lstrip("-").isdigit():
                result.add(int(raw))
        return result


settings = Settings()
