"""
Утилиты для формирования ключей кэша.
"""

from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from src.utils.url_parser import extract_product_id, normalize_url

# Параметры, которые меняются от клика к клику и не влияют на товар
VOLATILE_QUERY_PARAMS = {
    "spm",
    "scm",
    "pvid",
    "algo_pvid",
    "algo_exp_id",
    "aff_fcid",
    "aff_fsk",
    "aff_platform",
    "aff_trace_key",
    "sk",
    "terminal_id",
    "gatewayadapt",
    "_randl_currency",
    "_randl_shipto",
    "src",
    "afsmartredirect",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
}


def normalize_reference(reference: str) -> str:
    """
    Нормализует ссылку пользователя для ключа кэша.

    Если ID товара виден в ссылке, ключом становится сам ID: разные
    варианты ссылки на один товар попадают в одну запись. Иначе —
    URL с хостом в нижнем регистре, без фрагмента и без трекинговых
    параметров (отсортированные оставшиеся параметры).
    """
    reference = (reference or "").strip()
    product_id = extract_product_id(reference)
    if product_id:
        return product_id

    parsed = urlparse(normalize_url(reference))
    query = sorted(
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key.lower() not in VOLATILE_QUERY_PARAMS
    )
    return urlunparse((
        "https",
        (parsed.netloc or "").lower(),
        parsed.path.rstrip("/") or "/",
        "",
        urlencode(query),
        "",
    ))


def product_cache_key(reference: str) -> str:
    """Ключ кэша данных товара: "product:{normalized reference}"."""
    return f"product:{normalize_reference(reference)}"


def affiliate_cache_key(product_id: str) -> str:
    """Ключ кэша партнёрской ссылки: "affiliate:{product_id}"."""
    return f"affiliate:{product_id.strip()}"
