"""
Turn resolver: the per-request dialogue state machine.

Takes one utterance plus its history and decides what the assistant does:
answer, clarify, list products, compare, redirect, or ask for confirmation.
The result is a structured TurnDecision; markup is produced later by the
presentation layer (services.bot_message).

Resolution order:
  1. Pending purchase + yes/no
  2. Pending view/cart + yes/no
  3. Quick reply (no catalog)
  4. Catalog fetch + phase classification
  5. General phase (quick reply with catalog, then completion service)
  6. Vague product request
  7. Direct action (buy / view / cart)
  8. Comparison phase
  9. Recommendation phase
"""

from typing import List, Optional, Protocol, Sequence

from app_config import (
    CATALOG_TIMEOUT_SECONDS,
    COMPARISON_MAX_TOKENS,
    COMPARISON_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    MAX_ACTION_CARDS,
    STORE_NAME,
    STORE_URL,
)
from chat_logger import get_logger, truncate_for_log
from classifier import explain_phase
from conversation_flow import confirmation_prompt, extract_context, pending_record
from core.helpers import action_url, call_with_timeout, checkout_url, completion_executor
from extractors import (
    detect_price_range,
    extract_product_keywords,
    is_comparison_query,
    is_confirmation_response,
    is_direct_action_request,
    is_recommendation_query,
    is_vague_product_request,
)
from llm_fallback import (
    COMPARISON_PERSONA,
    build_comparison_prompt,
    build_general_prompt,
    build_store_persona,
    fallback_comparison,
    log_prompt,
)
from models import (
    ActionKind, ActionRequest, ChatMessage, Confirmation, ConversationContext,
    ErrorKind, Phase, Product, ReplyKind, TurnDecision, UpstreamError,
)
from product_matcher import cheapest_products, find_best_product_match, find_matching_products
from quick_replies import quick_reply

logger = get_logger("shopping_assistant.resolver")


class ProductCatalog(Protocol):
    def fetch_all(self) -> List[Product]: ...


class CompletionService(Protocol):
    def complete(self, system_persona: str, conversation_turns: Sequence[ChatMessage],
                 user_prompt: str, max_tokens: int, temperature: float) -> str: ...


class TurnResolver:
    def __init__(
        self,
        catalog: ProductCatalog,
        llm: Optional[CompletionService],
        store_url: str = STORE_URL,
        store_name: str = STORE_NAME,
        catalog_timeout: float = CATALOG_TIMEOUT_SECONDS,
        llm_timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        self.catalog = catalog
        self.llm = llm
        self.store_url = store_url
        self.store_name = store_name
        self.catalog_timeout = catalog_timeout
        self.llm_timeout = llm_timeout

    # ═══════════════════════════════════════════
    # ENTRY POINT
    # ═══════════════════════════════════════════

    def resolve(
        self,
        query: str,
        history: Sequence[ChatMessage],
        last_shown_products: Optional[Sequence[Product]] = None,
    ) -> TurnDecision:
        """
        Decide the assistant's response to one utterance.

        Raises:
            UpstreamError: when the catalog times out or fails
        """
        query = (query or "").strip()
        history = list(history or [])
        context = extract_context(history, last_shown_products)
        confirmation = is_confirmation_response(query)

        # Steps 1-2: a yes/no answer to the assistant's last question
        if context.pending_purchase is not None and confirmation is not None:
            logger.info(f"Step 1: Pending purchase confirmation | answer={confirmation.value}")
            return self._resolve_purchase_confirmation(context, confirmation)

        if context.pending_action in (ActionKind.VIEW, ActionKind.CART) and confirmation is not None:
            logger.info(
                f"Step 2: Pending {context.pending_action.value} confirmation | "
                f"target='{truncate_for_log(context.pending_target or '')}' | answer={confirmation.value}"
            )
            if confirmation is Confirmation.YES:
                return TurnDecision(
                    kind=ReplyKind.NAME_PRODUCT,
                    phase=Phase.RECOMMENDATION,
                    action=context.pending_action,
                )
            return TurnDecision(kind=ReplyKind.CONFIRM_DECLINED, phase=Phase.RECOMMENDATION)

        # Step 3: canned replies that need no catalog
        canned = quick_reply(query)
        if canned:
            logger.info("Step 3: Quick reply (no catalog)")
            return TurnDecision(kind=ReplyKind.QUICK_REPLY, text=canned)

        # Step 4: catalog + phase
        products = self._fetch_catalog()
        phase, rule = explain_phase(query, history, context)
        logger.info(f"Step 4: Phase classified | phase={phase.value} | rule={rule} | catalog={len(products)}")

        if not products:
            return TurnDecision(kind=ReplyKind.EMPTY_CATALOG, phase=Phase.RECOMMENDATION)

        if phase is Phase.GENERAL:
            return self._resolve_general(query, history, products)

        if is_vague_product_request(query):
            logger.info("Step 6: Vague product request")
            return TurnDecision(kind=ReplyKind.CLARIFY, phase=Phase.RECOMMENDATION)

        action_request = is_direct_action_request(query, products)
        if action_request is not None:
            return self._resolve_action(action_request, query, context, products)

        if phase is Phase.COMPARISON:
            return self._resolve_comparison(query, history, products)

        return self._resolve_recommendation(query, products)

    # ═══════════════════════════════════════════
    # STEP HANDLERS
    # ═══════════════════════════════════════════

    def _resolve_purchase_confirmation(
        self,
        context: ConversationContext,
        confirmation: Confirmation,
    ) -> TurnDecision:
        pending = context.pending_purchase
        if confirmation is Confirmation.NO:
            return TurnDecision(kind=ReplyKind.CONFIRM_DECLINED, phase=Phase.RECOMMENDATION)

        if pending.product_id is None:
            logger.warning(f"Step 1: Pending purchase unresolved | title='{truncate_for_log(pending.title)}'")
            return TurnDecision(
                kind=ReplyKind.UNRESOLVED_REFERENCE,
                phase=Phase.RECOMMENDATION,
                action=ActionKind.BUY,
                missing=[pending.title] if pending.title else [],
                error=ErrorKind.UNRESOLVED_REFERENCE.value,
            )

        return TurnDecision(
            kind=ReplyKind.REDIRECT,
            phase=Phase.RECOMMENDATION,
            action=ActionKind.BUY,
            redirect=checkout_url(pending.product_id, self.store_url),
            text=f"Great choice! Taking you to checkout for {pending.title}...",
        )

    def _fetch_catalog(self) -> List[Product]:
        result = call_with_timeout(self.catalog.fetch_all, self.catalog_timeout)
        if not result.ok:
            logger.error(f"Step 4: Catalog fetch failed | kind={result.error.value} | {result.detail}")
            raise UpstreamError(result.error, "catalog", result.detail)
        return list(result.value or [])

    def _resolve_general(
        self,
        query: str,
        history: List[ChatMessage],
        products: List[Product],
    ) -> TurnDecision:
        canned = quick_reply(query, products)
        if canned:
            logger.info("Step 5: Quick reply (with catalog)")
            return TurnDecision(kind=ReplyKind.QUICK_REPLY, text=canned)

        if self.llm is None:
            logger.info("Step 5: General answer | completion service not configured")
            return TurnDecision(kind=ReplyKind.GENERAL_ANSWER, degraded=True)

        mentioned = [p.title for p in find_matching_products(query, products, limit=3)]
        log_prompt("general", query)
        result = call_with_timeout(
            self.llm.complete,
            self.llm_timeout,
            build_store_persona(self.store_name),
            history,
            build_general_prompt(query, mentioned),
            LLM_MAX_TOKENS,
            LLM_TEMPERATURE,
            executor=completion_executor,
        )
        if result.ok and result.value:
            logger.info("Step 5: General answer from completion service")
            return TurnDecision(kind=ReplyKind.GENERAL_ANSWER, text=result.value)

        logger.warning(
            f"Step 5: Completion unavailable, using fallback | "
            f"kind={result.error.value if result.error else 'empty'} | {result.detail}"
        )
        return TurnDecision(kind=ReplyKind.GENERAL_ANSWER, degraded=True)

    def _resolve_action(
        self,
        request: ActionRequest,
        query: str,
        context: ConversationContext,
        products: List[Product],
    ) -> TurnDecision:
        action = request.action
        logger.info(
            f"Step 7: Direct action | action={action.value} | vague={request.vague} | "
            f"target='{truncate_for_log(request.target_name)}' | resolved={request.product is not None}"
        )

        product = request.product
        if product is not None:
            if action is ActionKind.BUY:
                return TurnDecision(
                    kind=ReplyKind.REDIRECT,
                    phase=Phase.RECOMMENDATION,
                    action=action,
                    products=[product],
                    redirect=action_url(action, product, self.store_url),
                    text=f"Taking you to checkout for {product.title}...",
                )
            return TurnDecision(
                kind=ReplyKind.ACTION_CONFIRM,
                phase=Phase.RECOMMENDATION,
                action=action,
                text=confirmation_prompt(action, product),
                pending=pending_record(action, product),
            )

        if request.vague:
            related = list(context.last_shown_products) or find_matching_products(query, products)
        else:
            related = find_matching_products(request.target_name, products)
            if not related:
                best = find_best_product_match(request.target_name, products)
                related = [best] if best else []
        related = related[:MAX_ACTION_CARDS]

        if not related:
            return TurnDecision(kind=ReplyKind.ACTION_CLARIFY, phase=Phase.RECOMMENDATION, action=action)

        decision = TurnDecision(
            kind=ReplyKind.ACTION_CARDS,
            phase=Phase.RECOMMENDATION,
            action=action,
            products=related,
        )
        if len(related) == 1:
            decision.text = confirmation_prompt(action, related[0])
            decision.pending = pending_record(action, related[0])
        return decision

    def _resolve_comparison(
        self,
        query: str,
        history: List[ChatMessage],
        products: List[Product],
    ) -> TurnDecision:
        pair = is_comparison_query(query)
        left = find_best_product_match(pair.left, products)
        right = find_best_product_match(pair.right, products)
        missing = [name for name, found in ((pair.left, left), (pair.right, right)) if found is None]

        if missing:
            logger.info(f"Step 8: Comparison unresolved | missing={missing}")
            related: List[Product] = []
            for name in missing:
                for product in find_matching_products(name, products, limit=3):
                    if product not in related:
                        related.append(product)
            if not related:
                related = cheapest_products(products, 3)
            return TurnDecision(
                kind=ReplyKind.COMPARISON_UNRESOLVED,
                phase=Phase.COMPARISON,
                products=related[:MAX_ACTION_CARDS],
                missing=missing,
            )

        text = None
        if self.llm is not None:
            log_prompt("comparison", query)
            result = call_with_timeout(
                self.llm.complete,
                self.llm_timeout,
                COMPARISON_PERSONA,
                [],
                build_comparison_prompt(left, right),
                COMPARISON_MAX_TOKENS,
                COMPARISON_TEMPERATURE,
                executor=completion_executor,
            )
            if result.ok and result.value:
                text = result.value
            else:
                logger.warning(
                    f"Step 8: Comparison completion unavailable, using fallback | "
                    f"kind={result.error.value if result.error else 'empty'}"
                )

        logger.info(f"Step 8: Comparison | left={left.id} | right={right.id} | llm={text is not None}")
        return TurnDecision(
            kind=ReplyKind.COMPARISON,
            phase=Phase.COMPARISON,
            products=[left] if left == right else [left, right],
            text=text or fallback_comparison(left, right),
            degraded=text is None,
        )

    def _resolve_recommendation(self, query: str, products: List[Product]) -> TurnDecision:
        keywords = extract_product_keywords(query)
        price_range = detect_price_range(query)
        matches = find_matching_products(query, products)
        logger.info(
            f"Step 9: Recommendation | keywords={keywords} | "
            f"price={price_range.describe() if price_range else None} | matches={len(matches)}"
        )

        if not matches:
            if keywords or price_range:
                return TurnDecision(
                    kind=ReplyKind.NO_MATCH,
                    phase=Phase.RECOMMENDATION,
                    keywords=keywords,
                    price_range=price_range,
                )
            return TurnDecision(kind=ReplyKind.CLARIFY, phase=Phase.RECOMMENDATION)

        if is_recommendation_query(query) or keywords:
            return TurnDecision(
                kind=ReplyKind.PRODUCTS,
                phase=Phase.RECOMMENDATION,
                products=matches,
                keywords=keywords,
                price_range=price_range,
            )

        # Unreachable with the current matcher, which needs keywords to match
        # anything. Matches without an ask to see them are never listed.
        return TurnDecision(kind=ReplyKind.NOT_SURE, phase=Phase.RECOMMENDATION)
