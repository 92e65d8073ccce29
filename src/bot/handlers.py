import logging
import uuid

from aiogram import Bot, F, Router
from aiogram.enums import ChatAction
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message

from src.bot.error_handler import ErrorHandler
from src.bot.formatter import PARSE_MODE, format_caption, format_product_message
from src.core.config import Settings
from src.services.resolver import Deal, ResolverService
from src.utils.url_parser import find_commerce_link

logger = logging.getLogger(__name__)

# Инициализация роутера для обработки сообщений.
# Зависимости (resolver, error_handler, config) передаются через workflow data диспетчера.
router = Router()

WELCOME_TEXT = (
    "👋 Welcome!\n\n"
    "Send me any AliExpress product link and I'll reply with the deal details "
    "and an affiliate link.\n\n"
    "Short links (s.click.aliexpress.com, a.aliexpress.com) work too."
)

HELP_TEXT = (
    "ℹ️ How to use the bot:\n\n"
    "1️⃣ Copy a product link from the AliExpress app or website\n"
    "2️⃣ Send it to me as a message\n"
    "3️⃣ Get the price, discount and your link\n\n"
    "Commands:\n"
    "/start — welcome message\n"
    "/help — this help\n"
    "/post <link> — publish a deal to the channel (admins only)"
)

NO_LINK_TEXT = (
    "🔗 Please send a valid AliExpress product link, for example:\n"
    "https://www.aliexpress.com/item/1005006123456789.html"
)


async def send_deal(bot: Bot, chat_id: int | str, deal: Deal) -> Message:
    """
    Отправляет сделку одним сообщением: фото с подписью, если есть картинка
    и текст влезает в подпись, иначе текстом.
    """
    caption = format_caption(deal.details, deal.link)
    if deal.details.image_url and caption:
        try:
            return await bot.send_photo(
                chat_id=chat_id,
                photo=deal.details.image_url,
                caption=caption,
                parse_mode=PARSE_MODE,
            )
        except TelegramBadRequest as e:
            # Telegram не смог загрузить картинку: отправляем текстом
            logger.warning(f"send_photo failed for product {deal.details.product_id}: {e}")

    return await bot.send_message(
        chat_id=chat_id,
        text=format_product_message(deal.details, deal.link),
        parse_mode=PARSE_MODE,
    )


async def _typing(bot: Bot, chat_id: int) -> None:
    try:
        await bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    except TelegramAPIError as e:
        logger.debug(f"send_chat_action failed: {e}")


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    await message.answer(WELCOME_TEXT)


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("post"))
async def cmd_post(
    message: Message,
    command: CommandObject,
    bot: Bot,
    resolver: ResolverService,
    error_handler: ErrorHandler,
    config: Settings,
) -> None:
    """
    Публикует сделку в канал CHANNEL_ID. Доступно только администраторам.
    """
    user_id = message.from_user.id if message.from_user else None
    if user_id not in config.admin_ids():
        await message.answer("⛔ This command is available to administrators only.")
        return

    link = find_commerce_link(command.args or "")
    if not link:
        await message.answer("Usage: /post <AliExpress product link>")
        return

    request_id = uuid.uuid4().hex[:8]
    logger.info(f"[{request_id}] /post by {user_id}: {link}")
    await _typing(bot, message.chat.id)
    try:
        deal = await resolver.process(link)
        await send_deal(bot, config.CHANNEL_ID, deal)
    except Exception as e:
        await error_handler.handle_error(e, message, context=link, request_id=request_id)
        return

    await message.answer(f"✅ Deal for product {deal.details.product_id} posted to the channel.")


@router.message(F.text)
async def handle_text(
    message: Message,
    bot: Bot,
    resolver: ResolverService,
    error_handler: ErrorHandler,
) -> None:
    """
    Обрабатывает текст со ссылкой: ссылка -> ID -> данные товара -> партнёрская ссылка -> ответ.
    На любую ошибку пользователь получает одно понятное сообщение.
    """
    link = find_commerce_link(message.text or "")
    if not link:
        await message.answer(NO_LINK_TEXT)
        return

    request_id = uuid.uuid4().hex[:8]
    logger.info(f"[{request_id}] Processing link from chat {message.chat.id}: {link}")
    await _typing(bot, message.chat.id)
    try:
        deal = await resolver.process(link)
        await send_deal(bot, message.chat.id, deal)
    except Exception as e:
        await error_handler.handle_error(e, message, context=link, request_id=request_id)
