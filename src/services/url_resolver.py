"""
Разрешение пользовательской ссылки в ID товара.

Порядок стратегий (первая удачная побеждает):
1. ID виден в самой ссылке (шаблоны src.utils.url_parser) — без сети;
2. короткая/трекинговая ссылка — GET с переходом по редиректам;
3. целевой URL, вложенный в query-параметр (dl_target_url, ulp, url, target);
4. иначе NotResolvable.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from src.api.aliexpress import build_ssl_verify
from src.core.config import Settings, settings as default_settings
from src.core.exceptions import NotResolvable, UpstreamTimeout
from src.utils.url_parser import extract_embedded_targets, extract_product_id, normalize_url

logger = logging.getLogger(__name__)


class URLResolver:
    """
    Раскрывает короткие и трекинговые ссылки AliExpress до ID товара.

    Args:
        config: Настройки (таймаут, лимит редиректов, User-Agent)
        http_client: Готовый httpx.AsyncClient (в тестах — с MockTransport)
    """

    def __init__(self, config: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config or default_settings
        self.max_redirects = self.config.RESOLVE_MAX_REDIRECTS
        self.timeout = self.config.RESOLVE_TIMEOUT
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=build_ssl_verify(self.config.DISABLE_SSL_VERIFY),
                max_redirects=self.max_redirects,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def follow_redirects(self, url: str) -> str:
        """
        Переходит по редиректам и возвращает итоговый URL.

        Raises:
            UpstreamTimeout: таймаут, сетевая ошибка или превышен лимит редиректов
        """
        headers = {
            "User-Agent": self.config.RESOLVE_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        client = self._get_client()
        try:
            # Тело итоговой страницы не читается: нужен только URL после редиректов
            async with client.stream(
                "GET",
                url,
                headers=headers,
                follow_redirects=True,
                timeout=self.timeout,
            ) as response:
                final_url = str(response.url)
                status_code = response.status_code
        except httpx.TooManyRedirects as exc:
            raise UpstreamTimeout(f"Превышен лимит редиректов ({self.max_redirects}) для {url}") from exc
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"Таймаут при раскрытии ссылки {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamTimeout(f"Не удалось открыть ссылку {url}: {exc}") from exc

        logger.info("Resolved %s -> %s (HTTP %s)", url, final_url, status_code)
        return final_url

    @staticmethod
    def _from_embedded(*urls: str) -> Optional[str]:
        for url in urls:
            for target in extract_embedded_targets(url):
                product_id = extract_product_id(target)
                if product_id:
                    logger.info("ID товара %s извлечён из вложенной ссылки %s", product_id, target)
                    return product_id
        return None

    async def resolve(self, reference: str) -> str:
        """
        Возвращает ID товара для ссылки или строки пользователя.

        Raises:
            NotResolvable: ни одна стратегия не дала ID
            UpstreamTimeout: ссылку не удалось раскрыть по сети и вложенной цели нет
        """
        reference = (reference or "").strip()
        if not reference:
            raise NotResolvable(reference, "пустая ссылка")

        product_id = extract_product_id(reference)
        if product_id:
            return product_id

        url = normalize_url(reference)
        try:
            final_url = await self.follow_redirects(url)
        except UpstreamTimeout as exc:
            # Редирект заблокирован или завис: пробуем вытащить цель из параметров
            logger.warning("%s", exc)
            product_id = self._from_embedded(url)
            if product_id:
                return product_id
            raise

        product_id = extract_product_id(final_url) or self._from_embedded(url, final_url)
        if product_id:
            return product_id
        raise NotResolvable(reference, f"итоговый URL {final_url} не содержит ID товара")
