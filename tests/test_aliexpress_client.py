import httpx
import pytest

from src.api.aliexpress import LINK_GENERATE_METHOD, PRODUCT_DETAIL_METHOD, AliExpressClient
from src.api.signature import sign
from src.core.exceptions import MalformedResponse, UpstreamError, UpstreamTimeout
from tests.conftest import link_payload, product_payload


def make_client(test_settings, fast_limiter, handler, retry_policy=None):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AliExpressClient(
        config=test_settings,
        limiter=fast_limiter,
        retry_policy=retry_policy,
        http_client=http_client,
    )


async def test_fetch_product_details_parses_product(test_settings, fast_limiter):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=product_payload("1005001"))

    client = make_client(test_settings, fast_limiter, handler)
    details = await client.fetch_product_details("1005001")

    assert details.product_id == "1005001"
    assert details.title == "Wireless Earbuds"
    assert details.sale_price == "8.00"
    assert details.original_price == "10.00"
    assert details.currency == "USD"
    assert details.orders == "1200"
    assert details.category == "Consumer Electronics / Earphones"
    assert details.ship_to == test_settings.SHIP_TO_COUNTRY == "US"
    assert details.ship_from is None

    params = dict(seen[0].url.params)
    assert seen[0].url.host == "primary.example"
    assert params["country"] == "US"
    assert params["method"] == PRODUCT_DETAIL_METHOD
    assert params["product_ids"] == "1005001"
    assert params["tracking_id"] == "deals_bot"


async def test_request_signature_is_valid(test_settings, fast_limiter):
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(200, json=link_payload())

    client = make_client(test_settings, fast_limiter, handler)
    await client.generate_affiliate_link("1005001")

    params = seen[0]
    received = params.pop("sign")
    assert received == sign(params, "secret")
    assert params["method"] == LINK_GENERATE_METHOD
    assert params["source_values"] == "https://www.aliexpress.com/item/1005001.html"
    assert params["sign_method"] == "md5"


async def test_generate_affiliate_link(test_settings, fast_limiter):
    client = make_client(
        test_settings, fast_limiter, lambda request: httpx.Response(200, json=link_payload("https://s.click.aliexpress.com/e/_x"))
    )
    link = await client.generate_affiliate_link("1005001")
    assert link.url == "https://s.click.aliexpress.com/e/_x"
    assert link.tracking_id == "deals_bot"


async def test_error_response_is_not_retried(test_settings, fast_limiter, no_sleep_retry):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={
            "error_response": {"code": 15, "msg": "Remote service error", "sub_msg": "Invalid tracking id"}
        })

    client = make_client(test_settings, fast_limiter, handler, retry_policy=no_sleep_retry)
    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_product_details("1005001")

    assert exc_info.value.code == "15"
    assert exc_info.value.message == "Invalid tracking id"
    assert len(calls) == 1


async def test_resp_code_error_is_reported(test_settings, fast_limiter):
    payload = {
        "aliexpress_affiliate_productdetail_get_response": {
            "resp_result": {"resp_code": 405, "resp_msg": "Product is not a promotion product"}
        }
    }
    client = make_client(test_settings, fast_limiter, lambda request: httpx.Response(200, json=payload))
    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_product_details("1005001")
    assert exc_info.value.code == "405"


async def test_connect_error_falls_back_to_second_endpoint(test_settings, fast_limiter, no_sleep_retry):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "primary.example":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=product_payload())

    client = make_client(test_settings, fast_limiter, handler, retry_policy=no_sleep_retry)
    details = await client.fetch_product_details("1005001")

    assert details.title == "Wireless Earbuds"
    assert hosts == ["primary.example", "fallback.example"]


async def test_server_errors_exhaust_retries(test_settings, fast_limiter):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    client = make_client(test_settings, fast_limiter, handler)
    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_product_details("1005001")

    assert exc_info.value.code == "503"
    assert len(calls) == test_settings.ALIEXPRESS_RETRY_ATTEMPTS


async def test_timeouts_become_upstream_timeout(test_settings, fast_limiter, no_sleep_retry):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(test_settings, fast_limiter, handler, retry_policy=no_sleep_retry)
    with pytest.raises(UpstreamTimeout):
        await client.fetch_product_details("1005001")


async def test_non_json_body_is_malformed(test_settings, fast_limiter):
    client = make_client(test_settings, fast_limiter, lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(MalformedResponse):
        await client.fetch_product_details("1005001")


async def test_unexpected_envelope_is_malformed(test_settings, fast_limiter):
    client = make_client(test_settings, fast_limiter, lambda request: httpx.Response(200, json={"foo": "bar"}))
    with pytest.raises(MalformedResponse):
        await client.generate_affiliate_link("1005001")


async def test_empty_product_list_is_not_found(test_settings, fast_limiter):
    payload = product_payload()
    payload["aliexpress_affiliate_productdetail_get_response"]["resp_result"]["result"]["products"]["product"] = []
    client = make_client(test_settings, fast_limiter, lambda request: httpx.Response(200, json=payload))
    with pytest.raises(UpstreamError) as exc_info:
        await client.fetch_product_details("1005001")
    assert exc_info.value.code == "not_found"
