"""
Tests for conversation context extraction: prompt templates, structured
pending records, and the last-message-only rule.
"""

from conftest import SAMPLE_PRODUCTS, assistant, user
from conversation_flow import (
    cart_prompt,
    confirmation_prompt,
    extract_context,
    pending_record,
    purchase_prompt,
    view_prompt,
)
from models import ActionKind

OAK = SAMPLE_PRODUCTS[0]
SOFA = SAMPLE_PRODUCTS[3]


class TestPromptBuilders:

    def test_purchase_prompt_wording(self):
        assert purchase_prompt(OAK) == "Would you like to proceed with purchasing Oak Dining Chair for $80.00?"

    def test_cart_prompt_wording(self):
        assert cart_prompt(OAK) == "Would you like to add Oak Dining Chair ($80.00) to your cart?"

    def test_view_prompt_wording(self):
        assert view_prompt(SOFA) == "Would you like to view details for Linen Sofa?"

    def test_dispatch(self):
        assert confirmation_prompt(ActionKind.BUY, OAK) == purchase_prompt(OAK)


class TestTemplateRecognition:
    """History without structured records falls back to the prompt wording."""

    def test_purchase_resolved_against_last_shown(self):
        history = [user("buy the oak chair"), assistant(purchase_prompt(OAK))]
        ctx = extract_context(history, [OAK, SOFA])
        assert ctx.pending_action is ActionKind.BUY
        assert ctx.pending_purchase.product_id == 1
        assert ctx.pending_purchase.slug == "oak-dining-chair"
        assert str(ctx.pending_purchase.price) == "80.00"

    def test_purchase_title_match_is_case_insensitive(self):
        text = "Would you like to proceed with purchasing OAK DINING CHAIR for $80.00?"
        ctx = extract_context([user("buy"), assistant(text)], [OAK])
        assert ctx.pending_purchase.product_id == 1

    def test_unresolved_purchase_keeps_title(self):
        history = [user("buy it"), assistant(purchase_prompt(OAK))]
        ctx = extract_context(history, [])
        assert ctx.pending_purchase.product_id is None
        assert ctx.pending_purchase.slug == ""
        assert ctx.pending_purchase.title == "Oak Dining Chair"

    def test_view_prompt(self):
        ctx = extract_context([user("view sofa"), assistant(view_prompt(SOFA))])
        assert ctx.pending_action is ActionKind.VIEW
        assert ctx.pending_target == "Linen Sofa"
        assert ctx.pending_purchase is None

    def test_cart_prompt(self):
        ctx = extract_context([user("add oak"), assistant(cart_prompt(OAK))])
        assert ctx.pending_action is ActionKind.CART
        assert ctx.pending_target == "Oak Dining Chair"


class TestContextRules:

    def test_only_last_message_counts(self):
        history = [user("buy"), assistant(purchase_prompt(OAK)), user("hmm")]
        assert not extract_context(history, [OAK]).has_pending

    def test_needs_two_messages(self):
        assert not extract_context([assistant(purchase_prompt(OAK))], [OAK]).has_pending

    def test_unrelated_assistant_message(self):
        ctx = extract_context([user("hi"), assistant("Hello! How can I help?")], [OAK])
        assert not ctx.has_pending
        assert ctx.last_shown_products == [OAK]

    def test_empty_history(self):
        assert not extract_context([], None).has_pending


class TestStructuredPending:
    """A pending record on the assistant message wins over the wording."""

    def test_record_used_even_when_text_differs(self):
        msg = assistant("Shall I check out Oak Dining Chair?", pending=pending_record(ActionKind.BUY, OAK))
        ctx = extract_context([user("buy oak"), msg], [])
        assert ctx.pending_purchase.product_id == 1
        assert ctx.pending_purchase.slug == "oak-dining-chair"

    def test_cart_record(self):
        msg = assistant(cart_prompt(OAK), pending=pending_record(ActionKind.CART, OAK))
        ctx = extract_context([user("add"), msg])
        assert ctx.pending_action is ActionKind.CART
        assert ctx.pending_purchase is None

    def test_malformed_record_is_ignored(self):
        msg = assistant("Would you like that?", pending={"action": "dance"})
        assert not extract_context([user("x"), msg]).has_pending

    def test_record_without_id_degrades(self):
        msg = assistant("...", pending={"action": "buy", "title": "Mystery", "productId": "7"})
        ctx = extract_context([user("x"), msg])
        assert ctx.pending_purchase.product_id is None
        assert ctx.pending_purchase.slug == ""
