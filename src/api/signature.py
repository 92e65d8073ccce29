"""
Подпись запросов к AliExpress Open Platform (схема sign_method=md5).

Алгоритм фиксирован платформой: любая ошибка в подписи приводит к отказу
API, поэтому реализация должна совпадать побайтно.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Mapping, Optional

SIGN_METHOD = "md5"
API_FORMAT = "json"
API_VERSION = "2.0"


def sign(params: Mapping[str, Optional[str]], secret: str) -> str:
    """
    Вычисляет подпись набора параметров.

    Пустые значения (None и "") не участвуют в подписи. Ключи сортируются
    побайтно, склеиваются как key+value, строка оборачивается секретом
    с обеих сторон, от результата берётся MD5 в верхнем регистре.

    Args:
        params: Параметры запроса (без поля sign)
        secret: App Secret приложения

    Returns:
        str: HEX-подпись в верхнем регистре
    """
    payload = "".join(
        f"{key}{params[key]}"
        for key in sorted(params)
        if params[key] is not None and params[key] != ""
    )
    digest = hashlib.md5(f"{secret}{payload}{secret}".encode("utf-8")).hexdigest()
    return digest.upper()


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Метка времени запроса в формате YYYYMMDDHHMMSS (UTC)."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")


def build_signed_request(
    method: str,
    fields: Mapping[str, Optional[str]],
    app_key: str,
    secret: str,
    timestamp: Optional[str] = None,
) -> dict[str, str]:
    """
    Собирает параметры подписанного запроса.

    Поле sign добавляется последним; любое изменение параметров после
    подписи делает запрос недействительным.
    """
    params: dict[str, str] = {
        "method": method,
        "app_key": app_key,
        "sign_method": SIGN_METHOD,
        "timestamp": timestamp or format_timestamp(),
        "format": API_FORMAT,
        "v": API_VERSION,
    }
    for key, value in fields.items():
        if value is None or value == "":
            continue
        params[key] = str(value)
    params["sign"] = sign(params, secret)
    return params
