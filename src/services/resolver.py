"""
Сервис конвейера "ссылка -> товар -> партнёрская ссылка".

ResolverService владеет кэшем, rate limiter'ом (через клиента API) и
резолвером ссылок. Создаётся один раз при старте и передаётся в
обработчики бота через workflow data диспетчера aiogram.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.api.aliexpress import AliExpressClient
from src.api.models import AffiliateLink, ProductDetails
from src.core.config import Settings, settings as default_settings
from src.services.cache import TTLCache
from src.services.url_resolver import URLResolver
from src.utils.cache_keys import affiliate_cache_key, product_cache_key

logger = logging.getLogger(__name__)


@dataclass
class Deal:
    """Результат конвейера: данные товара и партнёрская ссылка."""
    details: ProductDetails
    link: AffiliateLink


class ResolverService:
    """
    Разрешает ссылку, получает данные товара и партнёрскую ссылку с кэшированием.
    """

    def __init__(
        self,
        client: AliExpressClient,
        url_resolver: URLResolver,
        cache: Optional[TTLCache] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.client = client
        self.url_resolver = url_resolver
        self.cache = cache or TTLCache(ttl=self.config.CACHE_TTL, max_entries=self.config.CACHE_MAX_ENTRIES)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "ResolverService":
        config = config or default_settings
        return cls(
            client=AliExpressClient(config),
            url_resolver=URLResolver(config),
            config=config,
        )

    async def close(self) -> None:
        await self.client.close()
        await self.url_resolver.close()

    async def resolve(self, reference: str) -> str:
        """ID товара по ссылке (см. URLResolver.resolve)."""
        return await self.url_resolver.resolve(reference)

    async def get_product_details(self, reference: str) -> ProductDetails:
        """
        Данные товара по ссылке или ID, с кэшем по нормализованной ссылке.
        """
        key = product_cache_key(reference)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Cache hit for product reference: %s", key)
            return cached

        product_id = await self.resolve(reference)
        details = await self.client.fetch_product_details(product_id)
        self.cache.set(key, details)
        return details

    async def get_affiliate_link(self, product_id: str) -> AffiliateLink:
        """Партнёрская ссылка для ID товара, с кэшем по ID."""
        key = affiliate_cache_key(product_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Cache hit for affiliate link: %s", key)
            return cached

        link = await self.client.generate_affiliate_link(product_id)
        self.cache.set(key, link)
        return link

    async def process(self, reference: str) -> Deal:
        """
        Полный конвейер для одной ссылки.

        Партнёрская ссылка запрашивается только после успешного получения
        данных товара: ошибка на первом шаге прерывает конвейер.
        """
        details = await self.get_product_details(reference)
        link = await self.get_affiliate_link(details.product_id)
        logger.info("Deal ready for product_id=%s", details.product_id)
        return Deal(details=details, link=link)
