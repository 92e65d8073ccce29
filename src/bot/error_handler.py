"""
Модуль для обработки ошибок конвейера.
Обеспечивает дружественные сообщения для пользователей и детальные уведомления для админов.
"""

import html
import json
import logging
import traceback
from datetime import datetime
from typing import Optional

from aiogram import Bot
from aiogram.types import Message

from src.core.exceptions import (
    IncompleteProductError,
    MalformedResponse,
    NotResolvable,
    UpstreamError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Класс для централизованной обработки ошибок"""

    # Дружественные сообщения для пользователей
    USER_MESSAGES = {
        'not_resolvable': (
            "😔 I couldn't find a product in this link.\n\n"
            "Please send a direct AliExpress product link, for example:\n"
            "https://www.aliexpress.com/item/1005006123456789.html"
        ),
        'upstream_timeout': (
            "⏳ AliExpress is not responding right now.\n\n"
            "Please try again in a minute or two."
        ),
        'upstream_error': (
            "😔 AliExpress could not return this product.\n\n"
            "Reason: {reason}\n\n"
            "The product may be unavailable or not part of the affiliate program."
        ),
        'format_error': (
            "😔 This product is missing a title or a price, so I can't build a deal post.\n\n"
            "Please try another product."
        ),
        'unknown_error': (
            "😔 Something went wrong while processing your link.\n\n"
            "Please try again later."
        ),
    }

    def __init__(self, bot: Optional[Bot] = None, admin_chat_id: Optional[str] = None):
        """
        Инициализация обработчика ошибок.

        Args:
            bot: Экземпляр aiogram Bot для отправки уведомлений
            admin_chat_id: ID чата администратора для уведомлений об ошибках
        """
        self.bot = bot
        # Преобразуем admin_chat_id в int если это строка с числом
        if admin_chat_id:
            try:
                self.admin_chat_id = int(admin_chat_id) if isinstance(admin_chat_id, str) else admin_chat_id
            except (ValueError, TypeError):
                logger.warning(f"Invalid ADMIN_CHAT_ID format: {admin_chat_id}. Expected numeric string or int.")
                self.admin_chat_id = None
        else:
            self.admin_chat_id = None

    @staticmethod
    def classify_error(error: Exception) -> str:
        """
        Классифицирует ошибку для выбора подходящего сообщения пользователю.

        Returns:
            Тип ошибки (ключ для USER_MESSAGES либо malformed_response для логов)
        """
        if isinstance(error, NotResolvable):
            return 'not_resolvable'
        if isinstance(error, UpstreamTimeout):
            return 'upstream_timeout'
        # MalformedResponse — подкласс UpstreamError, проверяем раньше
        if isinstance(error, MalformedResponse):
            return 'malformed_response'
        if isinstance(error, UpstreamError):
            return 'upstream_error'
        if isinstance(error, IncompleteProductError):
            return 'format_error'
        return 'unknown_error'

    def user_message_for(self, error: Exception, error_type: str) -> str:
        """Текст ответа пользователю для ошибки."""
        if error_type in ('upstream_error', 'malformed_response'):
            reason = error.public_reason if isinstance(error, UpstreamError) else "unknown error"
            if error_type == 'malformed_response':
                reason = "unexpected response from AliExpress"
            return self.USER_MESSAGES['upstream_error'].format(reason=reason)
        return self.USER_MESSAGES.get(error_type, self.USER_MESSAGES['unknown_error'])

    async def handle_error(
        self,
        error: Exception,
        user_message: Message,
        context: str = "",
        request_id: Optional[str] = None,
    ) -> str:
        """
        Обрабатывает ошибку: логирует, уведомляет админа, отправляет дружественное сообщение пользователю.

        Args:
            error: Исключение, которое произошло
            user_message: Сообщение пользователя, вызвавшее ошибку
            context: Дополнительный контекст (например, ссылка на товар)
            request_id: ID запроса для сопоставления логов

        Returns:
            str: Тип ошибки
        """
        error_type = self.classify_error(error)
        user = user_message.from_user
        error_info = {
            'timestamp': datetime.now().isoformat(),
            'user_id': user.id if user else None,
            'username': user.username if user else None,
            'chat_id': user_message.chat.id,
            'message_text': user_message.text or "",
            'error_type': error_type,
            'error_class': error.__class__.__name__,
            'error_message': str(error),
            'context': context,
            'request_id': request_id,
            'traceback': "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        }

        record = {key: value for key, value in error_info.items() if key not in ('traceback', 'timestamp')}
        record["event"] = "error"
        if isinstance(error, UpstreamError):
            record["upstream_code"] = error.code
        if isinstance(error, MalformedResponse):
            record["payload"] = str(error.payload)[:500]
        # Ошибки пользователя (плохая ссылка) не требуют внимания разработчиков
        level = logging.WARNING if error_type in ('not_resolvable', 'format_error') else logging.ERROR
        logger.log(level, json.dumps(record, ensure_ascii=False))

        text = self.user_message_for(error, error_type)
        if request_id:
            text += f"\n\nRequest ID: {request_id}"
        try:
            await user_message.answer(text)
        except Exception as send_error:
            logger.error(f"Failed to send error message to user: {send_error}")

        if level >= logging.ERROR:
            await self._notify_admin(error_info)
        return error_type

    async def _notify_admin(self, error_info: dict) -> None:
        """
        Отправляет уведомление администратору о произошедшей ошибке.

        Args:
            error_info: Словарь с информацией об ошибке
        """
        if not self.admin_chat_id or self.bot is None:
            return

        admin_message = (
            "🚨 <b>ОШИБКА В БОТЕ</b> 🚨\n\n"
            f"⏰ <b>Время:</b> {error_info['timestamp']}\n"
            f"👤 <b>Пользователь:</b> {error_info['user_id']} "
            f"(@{html.escape(error_info['username'] or 'unknown')})\n"
            f"💬 <b>Чат:</b> {error_info['chat_id']}\n"
            f"📝 <b>Сообщение:</b> <code>{html.escape(error_info['message_text'][:100])}</code>\n\n"
            f"❗ <b>Тип ошибки:</b> {error_info['error_type']}\n"
            f"🐛 <b>Класс:</b> <code>{error_info['error_class']}</code>\n"
            f"📄 <b>Описание:</b> <code>{html.escape(error_info['error_message'][:200])}</code>\n"
        )
        if error_info.get('request_id'):
            admin_message += f"\n🪪 <b>Request ID:</b> <code>{error_info['request_id']}</code>\n"
        if error_info['context']:
            admin_message += f"\n🔗 <b>Контекст:</b> <code>{html.escape(error_info['context'][:100])}</code>\n"

        traceback_preview = html.escape(error_info['traceback'][-3000:])
        try:
            await self.bot.send_message(chat_id=self.admin_chat_id, text=admin_message, parse_mode="HTML")
            await self.bot.send_message(
                chat_id=self.admin_chat_id,
                text=f"<b>Traceback:</b>\n<pre>{traceback_preview}</pre>",
                parse_mode="HTML",
            )
            logger.info(f"Admin notification sent successfully to chat_id: {self.admin_chat_id}")
        except Exception as e:
            logger.error(f"Failed to send admin notification: {e}")
