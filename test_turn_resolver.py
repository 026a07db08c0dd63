"""
Turn resolver tests: every resolution step against a fake catalog and a
scripted completion service.
"""

import pytest

from app_config import COMPARISON_TEMPERATURE
from conftest import SAMPLE_PRODUCTS, FakeCatalog, FakeLLM, assistant, make_product, user
from conversation_flow import pending_record, purchase_prompt, view_prompt
from models import ActionKind, ErrorKind, Phase, ReplyKind, UpstreamError
from quick_replies import quick_reply
from turn_resolver import TurnResolver

STORE = "https://shop.test"
OAK = SAMPLE_PRODUCTS[0]
SOFA = SAMPLE_PRODUCTS[3]


def make_resolver(catalog=None, llm=None, **kwargs):
    return TurnResolver(
        catalog=catalog or FakeCatalog(),
        llm=llm,
        store_url=STORE,
        **kwargs,
    )


# ═══════════════════════════════════════════════════════════════
#  STEPS 1-2: CONFIRMATIONS
# ═══════════════════════════════════════════════════════════════

class TestPendingConfirmation:

    def test_yes_with_id_redirects_to_checkout(self, catalog):
        history = [user("buy oak"), assistant(purchase_prompt(OAK))]
        decision = make_resolver(catalog).resolve("yes", history, [OAK])
        assert decision.kind is ReplyKind.REDIRECT
        assert decision.redirect == f"{STORE}/checkout/?add-to-cart=1"
        assert catalog.calls == 0

    def test_yes_without_id_is_unresolved_reference(self):
        history = [user("buy oak"), assistant(purchase_prompt(OAK))]
        decision = make_resolver().resolve("yes", history, [])
        assert decision.kind is ReplyKind.UNRESOLVED_REFERENCE
        assert decision.redirect is None
        assert decision.error == ErrorKind.UNRESOLVED_REFERENCE.value
        assert decision.missing == ["Oak Dining Chair"]

    def test_no_declines(self):
        history = [user("buy oak"), assistant(purchase_prompt(OAK))]
        decision = make_resolver().resolve("no thanks", history, [OAK])
        assert decision.kind is ReplyKind.CONFIRM_DECLINED
        assert decision.redirect is None

    def test_structured_record_resolves_without_last_shown(self):
        msg = assistant(purchase_prompt(OAK), pending=pending_record(ActionKind.BUY, OAK))
        decision = make_resolver().resolve("sure", [user("buy oak"), msg], [])
        assert decision.redirect == f"{STORE}/checkout/?add-to-cart=1"

    def test_view_yes_asks_for_name(self, catalog):
        history = [user("view sofa"), assistant(view_prompt(SOFA))]
        decision = make_resolver(catalog).resolve("yes", history, [SOFA])
        assert decision.kind is ReplyKind.NAME_PRODUCT
        assert decision.action is ActionKind.VIEW
        assert decision.redirect is None
        assert catalog.calls == 0

    def test_view_no_declines(self):
        history = [user("view sofa"), assistant(view_prompt(SOFA))]
        assert make_resolver().resolve("nope", history, []).kind is ReplyKind.CONFIRM_DECLINED


# ═══════════════════════════════════════════════════════════════
#  STEPS 3-5: QUICK REPLIES, CATALOG, GENERAL
# ═══════════════════════════════════════════════════════════════

class TestQuickRepliesAndCatalog:

    def test_greeting_skips_catalog(self, catalog):
        decision = make_resolver(catalog).resolve("hello!", [], [])
        assert decision.kind is ReplyKind.QUICK_REPLY
        assert catalog.calls == 0

    def test_store_info_needs_catalog(self):
        assert quick_reply("what do you sell?") is None
        assert "Seating" in quick_reply("what do you sell?", SAMPLE_PRODUCTS)

    def test_store_info_answered_after_fetch(self, catalog):
        decision = make_resolver(catalog).resolve("what do you sell?", [], [])
        assert decision.kind is ReplyKind.QUICK_REPLY
        assert "Lighting" in decision.text
        assert catalog.calls == 1

    def test_catalog_failure_raises(self):
        resolver = make_resolver(FakeCatalog(error=RuntimeError("db down")))
        with pytest.raises(UpstreamError) as exc:
            resolver.resolve("show me chairs", [], [])
        assert exc.value.kind is ErrorKind.UPSTREAM_FAILURE

    def test_catalog_timeout_raises(self):
        resolver = make_resolver(FakeCatalog(delay=0.5), catalog_timeout=0.05)
        with pytest.raises(UpstreamError) as exc:
            resolver.resolve("show me chairs", [], [])
        assert exc.value.kind is ErrorKind.UPSTREAM_TIMEOUT

    def test_empty_catalog(self):
        decision = make_resolver(FakeCatalog(products=[])).resolve("show me chairs", [], [])
        assert decision.kind is ReplyKind.EMPTY_CATALOG


class TestGeneral:

    def test_completion_answer(self, llm):
        history = [assistant("Hello!")]
        decision = make_resolver(llm=llm).resolve("what is your return policy", history, [])
        assert decision.kind is ReplyKind.GENERAL_ANSWER
        assert decision.text == "Happy to help!"
        assert decision.phase is Phase.GENERAL
        assert len(llm.calls) == 1
        assert "return policy" in llm.calls[0]["user_prompt"]

    def test_completion_failure_degrades(self):
        llm = FakeLLM(error=RuntimeError("503"))
        decision = make_resolver(llm=llm).resolve("what is your return policy", [], [])
        assert decision.kind is ReplyKind.GENERAL_ANSWER
        assert decision.text is None
        assert decision.degraded
        assert decision.error is None

    def test_completion_timeout_degrades(self):
        llm = FakeLLM(delay=0.5)
        decision = make_resolver(llm=llm, llm_timeout=0.05).resolve("what is your return policy", [], [])
        assert decision.degraded

    def test_slow_completions_do_not_starve_catalog(self):
        resolver = make_resolver(llm=FakeLLM(delay=2.0), catalog_timeout=0.5, llm_timeout=0.02)
        for _ in range(20):
            assert resolver.resolve("what is your return policy", [], []).degraded

        decision = resolver.resolve("show me chairs", [], [])
        assert decision.kind is ReplyKind.PRODUCTS

    def test_no_llm_configured(self):
        decision = make_resolver(llm=None).resolve("oak table", [], [])
        assert decision.kind is ReplyKind.GENERAL_ANSWER
        assert decision.degraded


# ═══════════════════════════════════════════════════════════════
#  STEPS 6-7: VAGUE REQUESTS, DIRECT ACTIONS
# ═══════════════════════════════════════════════════════════════

class TestActions:

    def test_vague_product_request(self):
        decision = make_resolver().resolve("show me products", [], [])
        assert decision.kind is ReplyKind.CLARIFY
        assert decision.phase is Phase.RECOMMENDATION

    def test_buy_named_product_redirects(self):
        decision = make_resolver().resolve("buy the oak dining chair", [], [])
        assert decision.kind is ReplyKind.REDIRECT
        assert decision.redirect == f"{STORE}/checkout/?add-to-cart=1"

    def test_view_named_product_asks_first(self):
        decision = make_resolver().resolve("view details for linen sofa", [], [])
        assert decision.kind is ReplyKind.ACTION_CONFIRM
        assert decision.text == view_prompt(SOFA)
        assert decision.pending["action"] == "view"
        assert decision.redirect is None

    def test_vague_buy_with_one_shown_product(self):
        decision = make_resolver().resolve("buy it", [], [OAK])
        assert decision.kind is ReplyKind.ACTION_CARDS
        assert decision.products == [OAK]
        assert decision.text == purchase_prompt(OAK)
        assert decision.pending["productId"] == 1

    def test_vague_buy_caps_cards_at_three(self):
        decision = make_resolver().resolve("buy it", [], SAMPLE_PRODUCTS)
        assert decision.kind is ReplyKind.ACTION_CARDS
        assert len(decision.products) == 3
        assert decision.pending is None

    def test_vague_buy_with_nothing_to_show(self):
        decision = make_resolver().resolve("buy it", [], [])
        assert decision.kind is ReplyKind.ACTION_CLARIFY
        assert decision.action is ActionKind.BUY


# ═══════════════════════════════════════════════════════════════
#  STEP 8: COMPARISON
# ═══════════════════════════════════════════════════════════════

class TestComparison:

    def test_missing_name_reported(self, llm):
        catalog = FakeCatalog(products=[
            make_product(1, "ChairA", "50.00", description="A chair"),
            make_product(2, "Linen Sofa", "899.00"),
        ])
        decision = make_resolver(catalog, llm).resolve("compare ChairA and ChairB", [], [])
        assert decision.kind is ReplyKind.COMPARISON_UNRESOLVED
        assert decision.missing == ["ChairB"]
        assert decision.products
        assert llm.calls == []

    def test_completion_comparison(self, llm):
        decision = make_resolver(llm=llm).resolve("compare Oak Dining Chair and Linen Sofa", [], [])
        assert decision.kind is ReplyKind.COMPARISON
        assert decision.phase is Phase.COMPARISON
        assert [p.id for p in decision.products] == [1, 4]
        assert decision.text == "Happy to help!"
        assert llm.calls[0]["temperature"] == COMPARISON_TEMPERATURE

    def test_fallback_comparison(self):
        llm = FakeLLM(error=RuntimeError("down"))
        decision = make_resolver(llm=llm).resolve("Oak Dining Chair vs Linen Sofa", [], [])
        assert decision.kind is ReplyKind.COMPARISON
        assert decision.degraded
        assert "cheaper" in decision.text


# ═══════════════════════════════════════════════════════════════
#  STEP 9: RECOMMENDATION
# ═══════════════════════════════════════════════════════════════

class TestRecommendation:

    def test_price_filtered_listing(self):
        decision = make_resolver().resolve("show me chairs under 100", [], [])
        assert decision.kind is ReplyKind.PRODUCTS
        assert [p.id for p in decision.products] == [1]
        assert decision.shows_products

    def test_bare_dollar_range_listing(self):
        decision = make_resolver().resolve("show me lamps $20 to $50", [], [])
        assert decision.kind is ReplyKind.PRODUCTS
        assert [p.title for p in decision.products] == ["Brass Floor Lamp"]
        assert (decision.price_range.min_price, decision.price_range.max_price) == (20, 50)

    def test_no_match_names_the_request(self):
        decision = make_resolver().resolve("show me pianos", [], [])
        assert decision.kind is ReplyKind.NO_MATCH
        assert decision.keywords == ["pianos"]

    def test_no_match_price_only(self):
        decision = make_resolver().resolve("show me something under 10", [], [])
        assert decision.kind is ReplyKind.NO_MATCH
        assert decision.price_range.max_price == 10

    def test_nothing_to_go_on(self):
        decision = make_resolver().resolve("recommend something nice", [], [])
        assert decision.kind is ReplyKind.CLARIFY
