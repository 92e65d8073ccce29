import httpx
import pytest

from src.core.config import Settings
from src.services.rate_limit import TokenBucketLimiter
from src.services.retry import RetryPolicy


class FakeClock:
    """Управляемые часы для TTL и rate limiter."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        BOT_TOKEN="42:TEST-TOKEN",
        ALIEXPRESS_APP_KEY="500123",
        ALIEXPRESS_APP_SECRET="secret",
        ALIEXPRESS_TRACKING_ID="deals_bot",
        CHANNEL_ID="@deals_channel",
        ADMIN_CHAT_ID="1001",
        ALIEXPRESS_API_URL="https://primary.example/sync",
        ALIEXPRESS_FALLBACK_API_URL="https://fallback.example/sync",
        ALIEXPRESS_RETRY_BACKOFF=0.0,
        RESOLVE_MAX_REDIRECTS=3,
    )


@pytest.fixture
def fast_limiter(clock) -> TokenBucketLimiter:
    return TokenBucketLimiter(rate=1000.0, capacity=1000.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def no_sleep_retry() -> RetryPolicy:
    async def _no_sleep(_: float) -> None:
        return None

    return RetryPolicy(
        max_attempts=2,
        backoff=lambda attempt: 0.0,
        retry_on=(httpx.TransportError,),
        sleep=_no_sleep,
    )


def product_payload(product_id: str = "1005001", **overrides) -> dict:
    product = {
        "product_id": int(product_id),
        "product_title": "Wireless Earbuds",
        "target_sale_price": "8.00",
        "target_original_price": "10.00",
        "target_sale_price_currency": "USD",
        "evaluate_rate": "96.5%",
        "lastest_volume": 1200,
        "product_main_image_url": "https://ae01.alicdn.com/kf/earbuds.jpg",
        "first_level_category_name": "Consumer Electronics",
        "second_level_category_name": "Earphones",
    }
    product.update(overrides)
    return {
        "aliexpress_affiliate_productdetail_get_response": {
            "resp_result": {
                "resp_code": 200,
                "resp_msg": "Call succeeds",
                "result": {"current_record_count": 1, "products": {"product": [product]}},
            }
        }
    }


def link_payload(url: str = "https://s.click.aliexpress.com/e/_promo") -> dict:
    return {
        "aliexpress_affiliate_link_generate_response": {
            "resp_result": {
                "resp_code": 200,
                "resp_msg": "Call succeeds",
                "result": {
                    "promotion_link_type": 0,
                    "promotion_links": {
                        "promotion_link": [
                            {"promotion_link": url, "source_value": "https://www.aliexpress.com/item/1005001.html"}
                        ]
                    },
                },
            }
        }
    }
