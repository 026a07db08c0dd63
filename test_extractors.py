"""
Unit tests for the lexical extractors: price ranges, keywords, comparisons,
confirmations, nonsense/vague detection and direct actions.
"""

import pytest

from extractors import (
    AFFIRMATIVE_RESPONSES,
    NEGATIVE_RESPONSES,
    detect_price_range,
    extract_product_keywords,
    is_comparison_query,
    is_confirmation_response,
    is_direct_action_request,
    is_nonsense_query,
    is_recommendation_query,
    is_vague_product_request,
)
from models import ActionKind, Confirmation


class TestPriceRange:
    """detect_price_range: precedence and tolerance bands."""

    def test_between(self):
        r = detect_price_range("chairs between $10 and $50")
        assert (r.min_price, r.max_price) == (10, 50)

    def test_reversed_range_is_normalized(self):
        r = detect_price_range("from 500 to 200")
        assert (r.min_price, r.max_price) == (200, 500)

    @pytest.mark.parametrize("text", ["lamps $20 to $50", "lamps $20-$50", "lamps $20 - 50 dollars"])
    def test_bare_dollar_range(self, text):
        r = detect_price_range(text)
        assert (r.min_price, r.max_price) == (20, 50)

    def test_plain_number_range_is_not_a_price(self):
        assert detect_price_range("size 10-12 rug") is None

    def test_under(self):
        r = detect_price_range("lamps under $20")
        assert r.min_price is None
        assert r.max_price == 20

    def test_over(self):
        r = detect_price_range("sofas over 300 dollars")
        assert r.min_price == 300
        assert r.max_price is None

    def test_around_is_twenty_percent(self):
        r = detect_price_range("something around $100")
        assert (r.min_price, r.max_price) == (80, 120)

    def test_exact_is_five_percent(self):
        r = detect_price_range("exactly $50")
        assert (r.min_price, r.max_price) == (47.5, 52.5)

    def test_between_wins_over_under(self):
        r = detect_price_range("under 100, ideally between 20 and 30")
        assert (r.min_price, r.max_price) == (20, 30)

    def test_thousands_separator(self):
        r = detect_price_range("under $1,200")
        assert r.max_price == 1200

    def test_no_price(self):
        assert detect_price_range("show me chairs") is None
        assert detect_price_range("") is None


class TestKeywords:
    """extract_product_keywords: stop words, price phrases, dedupe."""

    def test_strips_stop_words_and_price(self):
        assert extract_product_keywords("Show me cheap wooden chairs under $100") == ["wooden", "chairs"]

    def test_empty(self):
        assert extract_product_keywords("") == []
        assert extract_product_keywords(None) == []

    def test_dedupes_in_order(self):
        assert extract_product_keywords("chair table chair") == ["chair", "table"]

    def test_short_tokens_dropped(self):
        assert extract_product_keywords("tv or pc stand") == ["stand"]

    @pytest.mark.parametrize("text", [
        "I want a red leather sofa around $500",
        "compare the oak chair and the walnut table",
        "between 10 and 20 dollars for blue rugs",
    ])
    def test_idempotent(self, text):
        keywords = extract_product_keywords(text)
        assert extract_product_keywords(" ".join(keywords)) == keywords


class TestComparison:
    """is_comparison_query: trigger + structure, names keep casing."""

    def test_compare_and(self):
        pair = is_comparison_query("compare ChairA and ChairB")
        assert (pair.left, pair.right) == ("ChairA", "ChairB")

    def test_difference_between_strips_articles(self):
        pair = is_comparison_query("What's the difference between the Oak Dining Chair and the Linen Sofa?")
        assert (pair.left, pair.right) == ("Oak Dining Chair", "Linen Sofa")

    def test_versus(self):
        pair = is_comparison_query("Linen Sofa vs Wool Area Rug")
        assert (pair.left, pair.right) == ("Linen Sofa", "Wool Area Rug")

    def test_which_is_better(self):
        pair = is_comparison_query("which is better, Oak Dining Chair or Velvet Accent Chair?")
        assert (pair.left, pair.right) == ("Oak Dining Chair", "Velvet Accent Chair")

    def test_better_than(self):
        pair = is_comparison_query("is the Linen Sofa better than the Velvet Accent Chair")
        assert (pair.left, pair.right) == ("Linen Sofa", "Velvet Accent Chair")

    def test_no_trigger(self):
        assert is_comparison_query("I like chairs and tables") is None

    def test_single_letter_names_rejected(self):
        assert is_comparison_query("compare a and b") is None


class TestConfirmation:
    """is_confirmation_response: exact whitelist matching."""

    def test_whitelists_are_disjoint(self):
        assert not (AFFIRMATIVE_RESPONSES & NEGATIVE_RESPONSES)

    @pytest.mark.parametrize("text", ["yes", "Yes!", "  sure ", "OK.", "yes please"])
    def test_yes(self, text):
        assert is_confirmation_response(text) is Confirmation.YES

    @pytest.mark.parametrize("text", ["no", "No thanks", "nope", "cancel"])
    def test_no(self, text):
        assert is_confirmation_response(text) is Confirmation.NO

    @pytest.mark.parametrize("text", ["yes I want the blue one", "maybe", "", "show me chairs"])
    def test_not_a_confirmation(self, text):
        assert is_confirmation_response(text) is None


class TestNonsenseAndVague:

    @pytest.mark.parametrize("text", ["aaaaaa", "bcdfghjk", "x", "12345"])
    def test_nonsense(self, text):
        assert is_nonsense_query(text)

    @pytest.mark.parametrize("text", ["chairs", "show me lamps", "oak table"])
    def test_not_nonsense(self, text):
        assert not is_nonsense_query(text)

    @pytest.mark.parametrize("text", ["Show me products", "show me products!", "What do you recommend?"])
    def test_vague(self, text):
        assert is_vague_product_request(text)

    def test_specific_request_is_not_vague(self):
        assert not is_vague_product_request("show me chairs")

    def test_recommendation_trigger(self):
        assert is_recommendation_query("recommend a lamp")
        assert not is_recommendation_query("hello")


class TestDirectAction:
    """is_direct_action_request: verbs, vague targets, catalog resolution."""

    def test_vague_buy(self, products):
        req = is_direct_action_request("buy it", products)
        assert req.action is ActionKind.BUY
        assert req.vague
        assert req.product is None

    def test_vague_cart(self, products):
        req = is_direct_action_request("add this one to my cart", products)
        assert req.action is ActionKind.CART
        assert req.vague

    def test_buy_resolves_product(self, products):
        req = is_direct_action_request("buy the oak dining chair", products)
        assert not req.vague
        assert req.target_name == "oak dining chair"
        assert req.product.id == 1

    def test_view_details(self, products):
        req = is_direct_action_request("view details for linen sofa", products)
        assert req.action is ActionKind.VIEW
        assert req.product.id == 4

    def test_unresolved_target(self, products):
        req = is_direct_action_request("buy unicorn saddle", products)
        assert not req.vague
        assert req.product is None

    def test_not_an_action(self, products):
        assert is_direct_action_request("show me chairs", products) is None
