"""
==============================================================================
ALIEXPRESS DEAL BOT - MAIN ENTRY POINT
==============================================================================
Главная точка входа приложения.
Инициализирует и запускает Telegram бота, который превращает ссылки
AliExpress в сообщения со сделкой и партнёрской ссылкой.

Режим работы:
- WEBHOOK_URL задан — HTTP-сервер webhook (aiohttp);
- WEBHOOK_URL пуст — long polling.

Version: 1.0.0
License: MIT
==============================================================================
"""

import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BotCommand, BotCommandScopeDefault

from src.bot.error_handler import ErrorHandler
from src.bot.handlers import router
from src.core.config import Settings, settings
from src.core.exceptions import ConfigError
from src.core.logging_config import setup_logging
from src.services.resolver import ResolverService
from src.webapp.server import WebhookServer


async def setup_bot_menu(bot: Bot) -> None:
    """
    Настраивает список команд бота, отображаемых в боковом меню Telegram.
    """
    commands = [
        BotCommand(command="start", description="Welcome message"),
        BotCommand(command="help", description="How to use the bot"),
    ]
    await bot.set_my_commands(commands, scope=BotCommandScopeDefault())


async def check_channel_access(bot: Bot, channel_id: str) -> bool:
    """
    Проверяет, что бот может публиковать сообщения в канале CHANNEL_ID.
    Результат только логируется: без прав не работает лишь /post.
    """
    try:
        member = await bot.get_chat_member(chat_id=channel_id, user_id=bot.id)
    except TelegramAPIError as e:
        logging.warning(f"Не удалось проверить права в канале {channel_id}: {e}")
        return False

    status = getattr(member, "status", "")
    can_post = status == "creator" or (status == "administrator" and getattr(member, "can_post_messages", True))
    if not can_post:
        logging.warning(f"Бот не может публиковать в канале {channel_id} (статус: {status})")
    return bool(can_post)


def build_dispatcher(config: Settings, resolver: ResolverService, error_handler: ErrorHandler) -> Dispatcher:
    """Создаёт диспетчер и передаёт зависимости обработчикам через workflow data."""
    dp = Dispatcher(resolver=resolver, error_handler=error_handler, config=config)
    dp.include_router(router)
    return dp


async def run_webhook(bot: Bot, dp: Dispatcher, config: Settings) -> None:
    server = WebhookServer(
        bot=bot,
        dispatcher=dp,
        host=config.WEBHOOK_HOST,
        port=config.WEBHOOK_PORT,
        path=config.WEBHOOK_PATH,
        secret_token=config.WEBHOOK_SECRET,
    )
    await server.start()
    webhook_url = config.WEBHOOK_URL.rstrip("/") + server.path
    await bot.set_webhook(
        webhook_url,
        secret_token=config.WEBHOOK_SECRET or None,
        drop_pending_updates=True,
    )
    logging.info(f"Webhook установлен: {webhook_url}")
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


async def main(config: Settings = settings):
    """
    Основная асинхронная функция для запуска Telegram бота.

    Выполняет следующие шаги:
    1. Проверяет обязательные настройки (без них бот не стартует)
    2. Создаёт сервис конвейера (кэш, rate limiter, клиенты API)
    3. Инициализирует бота, обработчик ошибок и диспетчер
    4. Запускает webhook-сервер или long polling
    """
    config.ensure_required()

    resolver = ResolverService.from_settings(config)
    bot = Bot(token=config.BOT_TOKEN)
    error_handler = ErrorHandler(bot, config.ADMIN_CHAT_ID or None)
    logging.info(f"Error handler initialized. Admin notifications: {'enabled' if error_handler.admin_chat_id else 'disabled'}")

    dp = build_dispatcher(config, resolver, error_handler)

    try:
        await setup_bot_menu(bot)
        await check_channel_access(bot, config.CHANNEL_ID)
        if config.WEBHOOK_URL:
            await run_webhook(bot, dp, config)
        else:
            # Удаление вебхуков (если были) и запуск поллинга для получения обновлений
            await bot.delete_webhook(drop_pending_updates=True)
            logging.info("Bot started in polling mode! 🚀")
            await dp.start_polling(bot)
    except asyncio.CancelledError:
        logging.info("Остановка бота по запросу пользователя…")
    finally:
        logging.info(f"Cache stats: {resolver.cache.stats()}")
        await resolver.close()
        await bot.session.close()


if __name__ == "__main__":
    setup_logging("DEBUG" if settings.DEBUG_MODE else settings.LOG_LEVEL)
    try:
        asyncio.run(main())
    except ConfigError as e:
        logging.critical(str(e))
        sys.exit(1)
    except (KeyboardInterrupt, SystemExit):
        logging.info("Работа завершена по прерыванию.")
