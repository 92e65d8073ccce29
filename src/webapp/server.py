"""
HTTP-сервер webhook: принимает обновления Telegram и передаёт их диспетчеру aiogram.
"""

from __future__ import annotations

import hmac
import logging

from aiogram import Bot, Dispatcher
from aiogram.types import Update
from aiohttp import web
from pydantic import ValidationError

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class WebhookServer:
    """
    Лёгкий aiohttp-сервер для приёма webhook Telegram.

    Любой запрос от Telegram подтверждается ответом 200, даже если обработка
    обновления завершилась ошибкой: иначе Telegram будет повторять доставку.
    """

    def __init__(
        self,
        *,
        bot: Bot,
        dispatcher: Dispatcher,
        host: str = "0.0.0.0",
        port: int = 3000,
        path: str = "/webhook",
        secret_token: str = "",
    ) -> None:
        self.bot = bot
        self.dispatcher = dispatcher
        self.host = host or "0.0.0.0"
        self.port = port or 3000
        self.path = "/" + (path or "/webhook").strip("/")
        self.secret_token = secret_token or ""

        self.app = web.Application()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._register_routes()

    # region web server bootstrap ------------------------------------------------
    def _register_routes(self) -> None:
        """
        Настраивает эндпоинты сервера.
        """
        self.app.router.add_get("/", self.handle_root)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_post(self.path, self.handle_update)

    async def start(self) -> None:
        """
        Запускает HTTP-сервер.
        """
        if self._runner:
            return

        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Webhook сервер запущен: http://%s:%s%s", self.host, self.port, self.path)

    async def stop(self) -> None:
        """
        Останавливает HTTP-сервер.
        """
        if not self._runner:
            return
        await self._runner.cleanup()
        self._runner = None
        self._site = None

    # endregion -----------------------------------------------------------------

    # region route handlers -----------------------------------------------------
    async def handle_root(self, request: web.Request) -> web.Response:
        return web.Response(text="Bot is running!")

    async def handle_health(self, request: web.Request) -> web.Response:
        """
        Простой healthcheck для мониторинга.
        """
        return web.json_response({"status": "ok"})

    async def handle_update(self, request: web.Request) -> web.Response:
        """
        Принимает обновление Telegram и передаёт его диспетчеру.
        """
        if self.secret_token:
            received = request.headers.get(SECRET_HEADER, "")
            if not hmac.compare_digest(received.encode("utf-8"), self.secret_token.encode("utf-8")):
                logger.warning("Webhook: неверный secret token от %s", request.remote)
                return web.json_response({"ok": False, "error": "forbidden"}, status=403)

        try:
            data = await request.json()
            update = Update.model_validate(data, context={"bot": self.bot})
        except (ValueError, ValidationError) as exc:
            logger.error("Webhook: некорректное обновление: %s", exc)
            return web.json_response({"ok": False})

        try:
            await self.dispatcher.feed_update(self.bot, update)
        except Exception:
            logger.exception("Webhook: ошибка обработки update_id=%s", update.update_id)
            return web.json_response({"ok": False})

        return web.json_response({"ok": True})

    # endregion -----------------------------------------------------------------
