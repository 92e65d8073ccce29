"""
==============================================================================
URL PARSER - Извлечение ID товара AliExpress из ссылок
==============================================================================
Чистые (без сети) функции разбора ссылок:
- упорядоченный список декларативных шаблонов "паттерн -> извлечение ID";
- поиск ссылок AliExpress в тексте сообщения;
- извлечение вложенной целевой ссылки из трекинговых URL.

Version: 1.0.0
License: MIT
==============================================================================
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import parse_qs, unquote, urlparse

# ID товара — только цифры
PRODUCT_ID_PATTERN = re.compile(r"^\d+$")

URL_IN_TEXT_PATTERN = re.compile(r"https?://[^\s<>\"']+|www\.[^\s<>\"']+", re.IGNORECASE)

# Параметры трекинговых ссылок, в которых лежит целевой URL
EMBEDDED_TARGET_PARAMS = ("dl_target_url", "ulp", "url", "target", "redirectUrl")

MAX_DECODE_ROUNDS = 3


@dataclass(frozen=True)
class Matcher:
    """Шаблон ссылки на товар: паттерн + функция извлечения ID из совпадения."""
    name: str
    pattern: "re.Pattern[str]"
    extract: Callable[["re.Match[str]"], str] = lambda match: match.group(1)


# Порядок важен: шаблоны проверяются сверху вниз, побеждает первый
PRODUCT_MATCHERS: List[Matcher] = [
    Matcher("item", re.compile(r"/item/(?:[^/?#]*/)?(\d+)(?:\.html?|(?=[/?#]|$))", re.IGNORECASE)),
    Matcher("detail", re.compile(r"/detail/(\d+)(?:\.html?|(?=[/?#]|$))", re.IGNORECASE)),
    Matcher("product", re.compile(r"/product/(\d+)(?:\.html?|(?=[/?#]|$))", re.IGNORECASE)),
    Matcher("p-slug", re.compile(r"/p/[^/?#]+/(\d+)\.html?", re.IGNORECASE)),
    Matcher("productId", re.compile(r"[?&#]productId=(\d+)(?=&|#|$)")),
    Matcher("itemId", re.compile(r"[?&#]itemId=(\d+)(?=&|#|$)")),
    Matcher("id", re.compile(r"[?&#]id=(\d+)(?=&|#|$)")),
]

# Домены AliExpress (включая региональные и короткие ссылки)
COMMERCE_DOMAIN_PATTERN = re.compile(
    r"(^|\.)(aliexpress\.(?:com\.[a-z]{2}|co\.[a-z]{2}|[a-z]{2,3})|ali\.click)$",
    re.IGNORECASE,
)


def is_product_id(value: str) -> bool:
    """Проверяет, что строка уже является ID товара (только цифры)."""
    return bool(PRODUCT_ID_PATTERN.match((value or "").strip()))


def extract_product_id(url: str) -> Optional[str]:
    """
    Извлекает ID товара из ссылки без сетевых запросов.

    Поддерживаемые форматы:
    - https://www.aliexpress.com/item/1005006123456789.html
    - https://m.aliexpress.com/detail/1005006123456789.html
    - https://aliexpress.ru/product/1005006123456789
    - https://www.aliexpress.com/p/some-slug/1005006123456789.html
    - ...?productId=1005006123456789 / ?itemId=... / ?id=...
    - голый ID: 1005006123456789

    Args:
        url: Ссылка или строка от пользователя

    Returns:
        Optional[str]: ID товара или None, если ни один шаблон не подошёл
    """
    if not url:
        return None
    candidate = url.strip()
    if is_product_id(candidate):
        return candidate

    for matcher in PRODUCT_MATCHERS:
        match = matcher.pattern.search(candidate)
        if match:
            product_id = matcher.extract(match)
            if is_product_id(product_id):
                return product_id
    return None


def safe_unquote(value: str) -> str:
    """
    Декодирует percent-encoding, пока строка остаётся закодированной.

    Некорректные последовательности не приводят к ошибке: unquote оставляет
    их как есть, а UnicodeDecodeError заменяется на исходное значение.
    """
    result = value
    for _ in range(MAX_DECODE_ROUNDS):
        if "%" not in result:
            break
        try:
            decoded = unquote(result, errors="strict")
        except UnicodeDecodeError:
            break
        if decoded == result:
            break
        result = decoded
    return result


def extract_embedded_targets(url: str) -> List[str]:
    """
    Возвращает целевые ссылки, вложенные в query-параметры трекинговой ссылки.

    Например, для https://s.click.aliexpress.com/deep_link.htm?dl_target_url=https%3A%2F%2F...
    вернётся декодированная ссылка на товар.
    """
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
    except ValueError:
        return []

    query = parse_qs(parsed.query, errors="replace")
    if parsed.fragment and "=" in parsed.fragment:
        for key, values in parse_qs(parsed.fragment, errors="replace").items():
            query.setdefault(key, values)

    targets: List[str] = []
    for param in EMBEDDED_TARGET_PARAMS:
        for raw in query.get(param, []):
            target = safe_unquote(raw.strip())
            if target and target not in targets:
                targets.append(target)
    return targets


def normalize_url(url: str) -> str:
    """Добавляет схему, если пользователь прислал ссылку вида www.aliexpress.com/..."""
    url = url.strip().rstrip(").,;!")
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    return url


def is_commerce_url(url: str) -> bool:
    """Проверяет, что ссылка ведёт на домен AliExpress (включая s.click, a.aliexpress, ali.click)."""
    try:
        host = (urlparse(normalize_url(url)).hostname or "").lower()
    except ValueError:
        return False
    return bool(host) and bool(COMMERCE_DOMAIN_PATTERN.search(host))


def find_links(text: str) -> List[str]:
    """Находит все ссылки в тексте сообщения (в порядке появления)."""
    if not text:
        return []
    return [normalize_url(match) for match in URL_IN_TEXT_PATTERN.findall(text)]


def find_commerce_link(text: str) -> Optional[str]:
    """Первая ссылка AliExpress в тексте или None."""
    for link in find_links(text):
        if is_commerce_url(link):
            return link
    return None
