import httpx
import json
import logging
import ssl
from typing import Any, Optional

import certifi

from src.api.models import AffiliateLink, ProductDetails, parse_envelope
from src.api.signature import build_signed_request
from src.core.config import Settings, settings as default_settings
from src.core.exceptions import MalformedResponse, UpstreamError, UpstreamTimeout
from src.services.rate_limit import TokenBucketLimiter
from src.services.retry import RetryPolicy, exponential_backoff

logger = logging.getLogger(__name__)

PRODUCT_DETAIL_METHOD = "aliexpress.affiliate.productdetail.get"
LINK_GENERATE_METHOD = "aliexpress.affiliate.link.generate"

PRODUCT_FIELDS = ",".join([
    "product_id",
    "product_title",
    "product_main_image_url",
    "product_detail_url",
    "target_sale_price",
    "target_original_price",
    "target_sale_price_currency",
    "evaluate_rate",
    "lastest_volume",
    "first_level_category_name",
    "second_level_category_name",
])


class ServerUnavailable(Exception):
    """HTTP 5xx от API: считается сетевой ошибкой и повторяется на запасном endpoint."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


def canonical_product_url(product_id: str) -> str:
    return f"https://www.aliexpress.com/item/{product_id}.html"


def build_ssl_verify(disable: bool):
    if disable:
        # ВНИМАНИЕ: Отключение проверки SSL небезопасно! Используйте только при необходимости
        logger.warning("SSL verification is DISABLED. This is not recommended for production!")
        return False
    # Используем certifi для корректной работы сертификатов
    return ssl.create_default_context(cafile=certifi.where())


class AliExpressClient:
    """
    Клиент AliExpress Affiliate API (endpoint /sync).

    Каждый запрос подписывается (см. src.api.signature), проходит через общий
    rate limiter и при сетевых ошибках (соединение, таймаут, 5xx) повторяется
    на запасном региональном endpoint. Ошибки валидации не повторяются.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        limiter: Optional[TokenBucketLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or default_settings
        self.app_key = self.config.ALIEXPRESS_APP_KEY
        self.app_secret = self.config.ALIEXPRESS_APP_SECRET
        self.tracking_id = self.config.ALIEXPRESS_TRACKING_ID
        self.endpoints = [
            url for url in (self.config.ALIEXPRESS_API_URL, self.config.ALIEXPRESS_FALLBACK_API_URL) if url
        ]
        self.debug_mode = self.config.DEBUG_MODE

        # Rate limiting (общий для всех вызовов этого клиента)
        self.limiter = limiter or TokenBucketLimiter(rate=self.config.ALIEXPRESS_RATE_LIMIT)
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.config.ALIEXPRESS_RETRY_ATTEMPTS,
            backoff=exponential_backoff(self.config.ALIEXPRESS_RETRY_BACKOFF),
            retry_on=(httpx.TransportError, ServerUnavailable),
        )
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=build_ssl_verify(self.config.DISABLE_SSL_VERIFY),
                timeout=self.config.ALIEXPRESS_TIMEOUT,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _send(self, attempt: int, method: str, fields: dict[str, Optional[str]]) -> Any:
        endpoint = self.endpoints[min(attempt, len(self.endpoints) - 1)]
        # Подписываем заново на каждую попытку: timestamp должен быть свежим
        params = build_signed_request(method, fields, self.app_key, self.app_secret)

        await self.limiter.acquire()
        logger.info("AliExpress %s -> %s (попытка %s)", method, endpoint, attempt + 1)
        response = await self._get_client().post(endpoint, params=params)

        if response.status_code >= 500:
            raise ServerUnavailable(response.status_code)
        if response.status_code >= 400:
            raise UpstreamError(response.status_code, response.text[:200])

        if self.debug_mode:
            logger.debug("AliExpress raw response: %s...", response.text[:500])

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise MalformedResponse("Ответ API не является JSON", response.text[:500]) from exc

    async def call(self, method: str, fields: dict[str, Optional[str]]) -> dict[str, Any]:
        """
        Выполняет подписанный вызов метода и возвращает проверенный result.

        Raises:
            UpstreamTimeout: сеть недоступна/таймаут на всех endpoint
            UpstreamError: API вернул код ошибки (в т.ч. 5xx после повторов)
            MalformedResponse: неожиданная структура ответа
        """
        async def attempt_call(attempt: int) -> Any:
            return await self._send(attempt, method, fields)

        try:
            payload = await self.retry_policy.run(attempt_call)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"Таймаут запроса {method}") from exc
        except httpx.TransportError as exc:
            raise UpstreamTimeout(f"Сетевая ошибка при запросе {method}: {exc}") from exc
        except ServerUnavailable as exc:
            raise UpstreamError(exc.status_code, "AliExpress API is temporarily unavailable") from exc

        try:
            return parse_envelope(method, payload)
        except MalformedResponse as exc:
            logger.error("Неожиданная структура ответа %s: %s | payload=%s", method, exc, str(exc.payload)[:500])
            raise
        except UpstreamError as exc:
            logger.error("AliExpress %s вернул ошибку: code=%s msg=%s", method, exc.code, exc.message)
            raise

    async def fetch_product_details(self, product_id: str) -> ProductDetails:
        """
        Получает данные товара по ID (aliexpress.affiliate.productdetail.get).

        Args:
            product_id (str): Числовой ID товара

        Returns:
            ProductDetails: Нормализованные данные товара
        """
        logger.info(f"Fetching product details from AliExpress for product_id: {product_id}")
        result = await self.call(PRODUCT_DETAIL_METHOD, {
            "product_ids": product_id,
            "fields": PRODUCT_FIELDS,
            "target_currency": self.config.TARGET_CURRENCY,
            "target_language": self.config.TARGET_LANGUAGE,
            "country": self.config.SHIP_TO_COUNTRY,
            "tracking_id": self.tracking_id,
        })
        return ProductDetails.from_result(product_id, result, ship_to=self.config.SHIP_TO_COUNTRY)

    async def generate_affiliate_link(self, product_id: str) -> AffiliateLink:
        """
        Генерирует партнёрскую ссылку (aliexpress.affiliate.link.generate).
        """
        logger.info(f"Generating affiliate link for product_id: {product_id}")
        result = await self.call(LINK_GENERATE_METHOD, {
            "source_values": canonical_product_url(product_id),
            "promotion_link_type": "0",
            "tracking_id": self.tracking_id,
        })
        return AffiliateLink.from_result(product_id, self.tracking_id, result)
