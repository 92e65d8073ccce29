import pytest

from src.api.models import AffiliateLink, ProductDetails, parse_envelope, response_key
from src.core.exceptions import MalformedResponse, UpstreamError
from tests.conftest import link_payload, product_payload

METHOD = "aliexpress.affiliate.productdetail.get"


def test_response_key():
    assert response_key("aliexpress.affiliate.link.generate") == "aliexpress_affiliate_link_generate_response"


def test_success_envelope_returns_result():
    result = parse_envelope(METHOD, product_payload())
    assert result["current_record_count"] == 1


@pytest.mark.parametrize("payload", [None, [], "text", {"unexpected": {}}])
def test_unrecognized_payload_is_malformed(payload):
    with pytest.raises(MalformedResponse):
        parse_envelope(METHOD, payload)


def test_error_response_prefers_sub_msg():
    with pytest.raises(UpstreamError) as exc_info:
        parse_envelope(METHOD, {"error_response": {"code": "IncompleteSignature", "msg": "sign error", "sub_msg": "The request signature does not conform"}})
    assert exc_info.value.code == "IncompleteSignature"
    assert "signature" in exc_info.value.message
    assert not isinstance(exc_info.value, MalformedResponse)


def test_missing_result_is_malformed():
    payload = {response_key(METHOD): {"resp_result": {"resp_code": 200, "resp_msg": "ok"}}}
    with pytest.raises(MalformedResponse):
        parse_envelope(METHOD, payload)


def test_product_details_fall_back_to_non_target_prices():
    raw = product_payload(
        target_sale_price=None,
        target_original_price=None,
        target_sale_price_currency=None,
        sale_price="3.10",
        original_price="4.00",
        sale_price_currency="EUR",
        second_level_category_name=None,
    )
    details = ProductDetails.from_result("1005001", parse_envelope(METHOD, raw))
    assert details.sale_price == "3.10"
    assert details.original_price == "4.00"
    assert details.currency == "EUR"
    assert details.category == "Consumer Electronics"


def test_affiliate_link_from_result():
    result = parse_envelope("aliexpress.affiliate.link.generate", link_payload("https://s.click.aliexpress.com/e/_y"))
    link = AffiliateLink.from_result("1", "t", result)
    assert link.url == "https://s.click.aliexpress.com/e/_y"


def test_affiliate_link_without_links_is_malformed():
    with pytest.raises(MalformedResponse):
        AffiliateLink.from_result("1", "t", {"promotion_links": "nope"})


def test_ship_to_is_the_requested_country():
    result = parse_envelope(METHOD, product_payload())
    assert ProductDetails.from_result("1005001", result, ship_to="DE").ship_to == "DE"
    details = ProductDetails.from_result("1005001", result)
    assert details.ship_to is None
    assert details.ship_from is None
