from bs4 import BeautifulSoup

from scrapii.signals import (
    PRICE_FALLBACK_LIMIT,
    analyze_ecommerce,
    count_cookies,
    count_external_links,
    count_images_without_alt,
    detect_user_access_points,
    extract_page_signals,
    parse_structured_data,
)


def _soup(html):
    return BeautifulSoup(html, "html.parser")


class TestUserAccessPoints:
    def test_labels_in_table_order(self):
        users = detect_user_access_points('<a href="/login">Log in</a> <a href="/join">Register</a>')
        assert users.has_users is True
        assert users.access_points == ("Login", "Registration")

    def test_no_access_points(self):
        users = detect_user_access_points("<p>Opening hours</p>")
        assert users.has_users is False
        assert users.access_points == ()


class TestEcommerce:
    def test_product_cards_counted(self):
        html = "".join(
            f'<div class="product"><h3>Item {i}</h3><span class="price">$1{i}</span></div>'
            for i in range(4)
        )
        signals = analyze_ecommerce(html, _soup(html))
        assert signals.total_products == 4

    def test_price_fallback_is_capped(self):
        html = "<p>" + " ".join("$10" for _ in range(9)) + "</p>"
        signals = analyze_ecommerce(html, _soup(html))
        assert signals.total_products == PRICE_FALLBACK_LIMIT

    def test_payment_methods(self):
        html = '<img class="paypal-button"><div id="stripe-checkout"></div>'
        signals = analyze_ecommerce(html, _soup(html))
        assert signals.payment_methods == ("PayPal", "Stripe")

    def test_malformed_json_ld_is_ignored(self):
        html = (
            '<script type="application/ld+json">{not json</script>'
            '<script type="application/ld+json">{"@type": "Product", "name": "Lamp"}</script>'
            '<script type="application/ld+json">{"@graph": [{"@type": "Organization"}]}</script>'
        )
        types = parse_structured_data(_soup(html))
        assert "Product" in types
        assert "Organization" in types
        signals = analyze_ecommerce(html, _soup(html))
        assert signals.has_product_schema is True
        assert signals.has_review_schema is False


class TestPageCounters:
    def test_external_links(self):
        html = (
            '<a href="https://other.org/x">a</a>'
            '<a href="https://blog.example.com/">b</a>'
            '<a href="/local">c</a>'
            '<a href="mailto:me@example.com">d</a>'
        )
        assert count_external_links(_soup(html), "https://shop.example.com/") == 1

    def test_lookalike_domain_is_external(self):
        html = (
            '<a href="https://notexample.com/">a</a>'
            '<a href="https://example.com/about">b</a>'
            '<a href="https://example.com.evil.test/">c</a>'
        )
        assert count_external_links(_soup(html), "https://www.example.com/") == 2

    def test_images_without_alt(self):
        html = '<img src="a.png" alt="Logo"><img src="b.png"><img src="c.png" alt="">'
        assert count_images_without_alt(_soup(html)) == 2

    def test_cookies_from_set_cookie(self):
        assert count_cookies({"Set-Cookie": "session=abc; Path=/; HttpOnly"}) == 1
        assert count_cookies({"set-cookie": ["a=1", "b=2"]}) == 2
        assert count_cookies(None) == 0

    def test_extract_page_signals(self):
        html = "<html><head><title>My Portfolio</title></head><body><img src='x.png'></body></html>"
        signals = extract_page_signals(html, "https://me.example.com/")
        assert signals.title == "My Portfolio"
        assert signals.images_without_alt == 1
        assert signals.ecommerce.total_products == 0
