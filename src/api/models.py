"""
Модели ответов AliExpress Affiliate API и нормализованные данные товара.

Конверт ответа разбирается как размеченное объединение:
- {"error_response": {...}} — ошибка платформы (подпись, параметры, лимиты);
- {"<method>_response": {"resp_result": {...}}} — ответ метода;
- всё остальное — MalformedResponse.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from src.core.exceptions import MalformedResponse, UpstreamError

SUCCESS_CODE = 200


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    code: Union[str, int, None] = None
    msg: str = ""
    sub_code: Optional[str] = None
    sub_msg: Optional[str] = None
    request_id: Optional[str] = None


class ErrorEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error_response: ErrorBody


class RespResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resp_code: int
    resp_msg: str = ""
    result: Optional[dict[str, Any]] = None


class MethodResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resp_result: RespResult


class ProductItem(BaseModel):
    """Товар в ответе aliexpress.affiliate.productdetail.get (используемые поля)."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    product_id: Optional[str] = None
    product_title: Optional[str] = None
    target_sale_price: Optional[str] = None
    target_original_price: Optional[str] = None
    sale_price: Optional[str] = None
    original_price: Optional[str] = None
    target_sale_price_currency: Optional[str] = None
    sale_price_currency: Optional[str] = None
    evaluate_rate: Optional[str] = None
    lastest_volume: Optional[str] = None
    product_main_image_url: Optional[str] = None
    product_detail_url: Optional[str] = None
    first_level_category_name: Optional[str] = None
    second_level_category_name: Optional[str] = None


class PromotionLink(BaseModel):
    model_config = ConfigDict(extra="ignore")

    promotion_link: str
    source_value: Optional[str] = None


def response_key(method: str) -> str:
    """aliexpress.affiliate.link.generate -> aliexpress_affiliate_link_generate_response"""
    return method.replace(".", "_") + "_response"


def parse_envelope(method: str, payload: Any) -> dict[str, Any]:
    """
    Проверяет конверт ответа и возвращает полезную нагрузку result.

    Raises:
        UpstreamError: платформа или метод вернули код ошибки
        MalformedResponse: структура ответа не распознана
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Ожидался JSON-объект, получено {type(payload).__name__}", payload)

    if "error_response" in payload:
        try:
            envelope = ErrorEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponse(f"Некорректный error_response: {exc.errors()[:1]}", payload) from exc
        body = envelope.error_response
        raise UpstreamError(body.code, body.sub_msg or body.msg)

    key = response_key(method)
    if key not in payload:
        raise MalformedResponse(f"В ответе нет ключа {key}", payload)

    try:
        response = MethodResponse.model_validate(payload[key])
    except ValidationError as exc:
        raise MalformedResponse(f"Некорректный {key}: {exc.errors()[:1]}", payload) from exc

    resp = response.resp_result
    if resp.resp_code != SUCCESS_CODE:
        raise UpstreamError(resp.resp_code, resp.resp_msg)
    if resp.result is None:
        raise MalformedResponse(f"В {key} нет result", payload)
    return resp.result


def _first(container: dict[str, Any], outer: str, inner: str) -> Any:
    """result[outer][inner][0] с проверкой структуры."""
    group = container.get(outer)
    if not isinstance(group, dict):
        raise MalformedResponse(f"В result нет объекта {outer}", container)
    items = group.get(inner)
    if not isinstance(items, list):
        raise MalformedResponse(f"В {outer} нет списка {inner}", container)
    if not items:
        raise UpstreamError("not_found", "Product not found or not available for promotion")
    return items[0]


@dataclass
class ProductDetails:
    """Нормализованные данные товара для сообщения."""
    product_id: str
    title: Optional[str] = None
    sale_price: Optional[str] = None
    original_price: Optional[str] = None
    currency: Optional[str] = None
    rating: Optional[str] = None
    orders: Optional[str] = None
    ship_from: Optional[str] = None
    ship_to: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    product_url: Optional[str] = None

    @classmethod
    def from_result(cls, product_id: str, result: dict[str, Any], ship_to: Optional[str] = None) -> "ProductDetails":
        """
        Args:
            ship_to: Страна, для которой запрошены цены (параметр country запроса).
                Отправитель в ответе API не указывается, поэтому ship_from не заполняется.
        """
        raw = _first(result, "products", "product")
        try:
            item = ProductItem.model_validate(raw)
        except ValidationError as exc:
            raise MalformedResponse(f"Некорректная карточка товара: {exc.errors()[:1]}", raw) from exc

        categories = [c for c in (item.first_level_category_name, item.second_level_category_name) if c]
        return cls(
            product_id=item.product_id or product_id,
            title=(item.product_title or "").strip() or None,
            sale_price=item.target_sale_price or item.sale_price,
            original_price=item.target_original_price or item.original_price,
            currency=item.target_sale_price_currency or item.sale_price_currency,
            rating=item.evaluate_rate,
            orders=item.lastest_volume,
            ship_to=ship_to or None,
            category=" / ".join(categories) or None,
            image_url=item.product_main_image_url,
            product_url=item.product_detail_url,
        )


@dataclass
class AffiliateLink:
    """Партнёрская ссылка на товар."""
    product_id: str
    tracking_id: str
    url: str

    @classmethod
    def from_result(cls, product_id: str, tracking_id: str, result: dict[str, Any]) -> "AffiliateLink":
        raw = _first(result, "promotion_links", "promotion_link")
        try:
            link = PromotionLink.model_validate(raw)
        except ValidationError as exc:
            raise MalformedResponse(f"Некорректная партнёрская ссылка: {exc.errors()[:1]}", raw) from exc
        return cls(product_id=product_id, tracking_id=tracking_id, url=link.promotion_link)
