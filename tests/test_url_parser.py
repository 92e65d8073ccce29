import pytest

from src.utils.url_parser import (
    extract_embedded_targets,
    extract_product_id,
    find_commerce_link,
    find_links,
    is_commerce_url,
    safe_unquote,
)


@pytest.mark.parametrize("product_id", ["1", "123456", "1005006123456789"])
@pytest.mark.parametrize(
    "template",
    [
        "https://www.aliexpress.com/item/{id}.html",
        "https://x.com/item/{id}.html?spm=a2g0o.home",
        "https://m.aliexpress.com/detail/{id}.html",
        "https://x.com/detail/{id}",
        "https://aliexpress.ru/product/{id}",
        "https://www.aliexpress.com/p/some-slug/{id}.html",
        "https://x.com/page?productId={id}",
        "https://x.com/page?foo=bar&itemId={id}",
        "https://x.com/page?id={id}",
        "{id}",
    ],
)
def test_extract_product_id_from_known_shapes(template, product_id):
    assert extract_product_id(template.format(id=product_id)) == product_id


@pytest.mark.parametrize(
    "url",
    [
        "https://s.click.aliexpress.com/e/_DdwxYz1",
        "https://a.aliexpress.com/_mKabc12",
        "https://x.com/page?id=abc",
        "https://x.com/page?productId=12a",
        "",
    ],
)
def test_extract_product_id_returns_none_without_id(url):
    assert extract_product_id(url) is None


def test_product_id_param_does_not_match_inside_other_names():
    assert extract_product_id("https://x.com/page?sellerid=555") is None


def test_extract_embedded_targets_decodes_ulp():
    url = "https://s.click.aliexpress.com/deep_link.htm?aff_short_key=x&ulp=https%3A%2F%2Fx.com%2Fitem%2F777.html"
    assert extract_embedded_targets(url) == ["https://x.com/item/777.html"]


def test_extract_embedded_targets_handles_double_encoding():
    url = "https://click.example/r?dl_target_url=https%253A%252F%252Fx.com%252Fitem%252F42.html"
    targets = extract_embedded_targets(url)
    assert targets == ["https://x.com/item/42.html"]
    assert extract_product_id(targets[0]) == "42"


def test_malformed_percent_encoding_does_not_raise():
    url = "https://click.example/r?target=https%3A%2F%2Fx.com%2Fitem%2F9.html%E0%A4%A"
    targets = extract_embedded_targets(url)
    assert len(targets) == 1
    assert extract_product_id(targets[0]) == "9"


def test_safe_unquote_keeps_raw_value_on_invalid_utf8():
    assert safe_unquote("abc%FF%FE") == "abc%FF%FE"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.aliexpress.com/item/1.html", True),
        ("https://s.click.aliexpress.com/e/_abc", True),
        ("https://a.aliexpress.com/_abc", True),
        ("https://aliexpress.ru/item/1.html", True),
        ("https://he.aliexpress.com/item/1.html", True),
        ("https://ali.click/abc", True),
        ("www.aliexpress.us/item/1.html", True),
        ("https://www.amazon.com/dp/B000", False),
        ("https://notaliexpress.com/item/1.html", False),
        ("https://aliexpress.com.evil.io/item/1.html", False),
    ],
)
def test_is_commerce_url(url, expected):
    assert is_commerce_url(url) is expected


def test_find_links_and_commerce_link():
    text = "look https://example.com/x and this www.aliexpress.com/item/5.html, great!"
    assert find_links(text) == ["https://example.com/x", "https://www.aliexpress.com/item/5.html"]
    assert find_commerce_link(text) == "https://www.aliexpress.com/item/5.html"
    assert find_commerce_link("no links here") is None
