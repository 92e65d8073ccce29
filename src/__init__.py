"""
AliExpress Deal Bot - Source Code Package
=========================================
Telegram бот: ссылка AliExpress -> данные товара + партнёрская ссылка.

Структура:
- bot/      - Telegram бот (handlers, форматирование, error handling)
- api/      - Клиент AliExpress Affiliate API и подпись запросов
- core/     - Конфигурация, логирование, исключения
- services/ - Конвейер, кэш, rate limiting, разрешение ссылок
- utils/    - Разбор ссылок и ключи кэша
- webapp/   - HTTP-сервер webhook
"""

__version__ = "1.0.0"
