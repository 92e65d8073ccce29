"""
Форматирование сообщения о товаре (Telegram HTML).
"""

from __future__ import annotations

import html
import math
import re
from typing import Optional

from src.api.models import AffiliateLink, ProductDetails
from src.core.exceptions import IncompleteProductError

CAPTION_TEXT_LIMIT = 1024  # Telegram captions <= 1024 символов
PARSE_MODE = "HTML"
NUMBER_PATTERN = re.compile(r"\d[\d.,]*")


def parse_price(value: Optional[str]) -> Optional[float]:
    """
    'US $8.50' / '8,50' / 'US $1,299.00' / '1.299,00' -> float; None, если числа нет.

    Если в числе есть и точка, и запятая, десятичным разделителем считается
    последний из них. Одиночная запятая с ровно тремя цифрами после неё —
    разделитель тысяч.
    """
    if value is None:
        return None
    match = NUMBER_PATTERN.search(str(value))
    if not match:
        return None
    number = match.group(0).rstrip(".,")

    if "," in number and "." in number:
        if number.rfind(",") > number.rfind("."):
            number = number.replace(".", "").replace(",", ".")
        else:
            number = number.replace(",", "")
    elif "," in number:
        head, _, tail = number.rpartition(",")
        if len(tail) == 3:
            number = number.replace(",", "")
        else:
            number = head.replace(",", "") + "." + tail
    elif number.count(".") > 1:
        # 1.299.000 — точки как разделители тысяч
        number = number.replace(".", "")

    try:
        return float(number)
    except ValueError:
        return None


def discount_percent(sale_price: Optional[str], original_price: Optional[str]) -> Optional[int]:
    """
    Процент скидки round((1 - sale/original) * 100) (половина — вверх).

    Returns:
        Optional[int]: None, если исходной цены нет или она не больше цены продажи
    """
    sale = parse_price(sale_price)
    original = parse_price(original_price)
    if sale is None or original is None or original <= 0 or original <= sale:
        return None
    # round() в Python округляет к чётному, а нужна обычная арифметика
    return int(math.floor((1 - sale / original) * 100 + 0.5))


def _price(value: str, currency: Optional[str]) -> str:
    value = html.escape(str(value).strip())
    return f"{value} {html.escape(currency)}" if currency else value


def format_product_message(details: ProductDetails, link: AffiliateLink) -> str:
    """
    Формирует текст сообщения о товаре (parse_mode=HTML).

    Строки с необязательными полями (скидка, рейтинг, заказы, доставка,
    категория) пропускаются, если данных нет.

    Raises:
        IncompleteProductError: нет названия или цены товара
    """
    title = (details.title or "").strip()
    sale_price = (details.sale_price or "").strip()
    if not title or not sale_price:
        raise IncompleteProductError(f"Товар {details.product_id}: нет названия или цены")

    lines = [f"🛍 <b>{html.escape(title)}</b>", ""]
    lines.append(f"💰 Price: {_price(sale_price, details.currency)}")

    discount = discount_percent(sale_price, details.original_price)
    if discount is not None:
        lines.append(f"🏷 Original price: {_price(details.original_price, details.currency)}")
        lines.append(f"🔥 {discount}% OFF")

    if details.rating:
        lines.append(f"⭐ Rating: {html.escape(details.rating)}")
    if details.orders:
        lines.append(f"📦 Orders: {html.escape(details.orders)}")

    if details.ship_from and details.ship_to:
        lines.append(f"🚚 Shipping: {html.escape(details.ship_from)} → {html.escape(details.ship_to)}")
    elif details.ship_from:
        lines.append(f"🚚 Ships from: {html.escape(details.ship_from)}")
    elif details.ship_to:
        lines.append(f"🚚 Ships to: {html.escape(details.ship_to)}")

    if details.category:
        lines.append(f"🗂 Category: {html.escape(details.category)}")

    lines.append("")
    lines.append(f'👉 <a href="{html.escape(link.url, quote=True)}">Buy now</a>')
    return "\n".join(lines)


def format_caption(details: ProductDetails, link: AffiliateLink) -> Optional[str]:
    """Текст для подписи к фото или None, если он не влезает в лимит подписи."""
    text = format_product_message(details, link)
    return text if len(text) <= CAPTION_TEXT_LIMIT else None
