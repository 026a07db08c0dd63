"""
Shopping Assistant - Chat API Backend
Runs on port 5009 with /chat endpoint.

Usage:
    python server.py

Endpoints:
    POST http://localhost:5009/chat              (alias /api/customer-assistant)
         Body: {"query": "...", "history": [...], "lastShownProducts": [...], "sessionId": "..."}
    POST http://localhost:5009/chat/refresh      (alias /api/customer-assistant/refresh)
    GET  http://localhost:5009/session/<id>
    GET  http://localhost:5009/health
"""

import time
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS

from app_config import PORT, DEBUG, LLM_API_KEY, STORE_URL, WELCOME_MESSAGE
from chat_logger import get_logger, truncate_for_log
from core import SessionStore, cap_history, parse_chat_request
from llm_fallback import LLMClient
from models import (
    ChatMessage, ErrorKind, Phase, RequestValidationError, TurnDecision, UpstreamError,
)
from services import CatalogClient, random_error_fallback, render_reply
from turn_resolver import TurnResolver

logger = get_logger("shopping_assistant")


def _build_llm() -> Optional[LLMClient]:
    if not LLM_API_KEY:
        logger.warning("LLM_API_KEY not set | general answers will use fallback text")
        return None
    try:
        return LLMClient()
    except ValueError as e:
        logger.error(f"LLM client not configured | {e}")
        return None


def _public_phase(decision: Optional[TurnDecision]) -> str:
    # Clients only know general/recommendation; comparisons are product talk.
    if decision is None or decision.phase is Phase.GENERAL:
        return Phase.GENERAL.value
    return Phase.RECOMMENDATION.value


def create_app(
    resolver: Optional[TurnResolver] = None,
    session_store: Optional[SessionStore] = None,
    start_sweeper: bool = True,
) -> Flask:
    resolver = resolver or TurnResolver(catalog=CatalogClient(), llm=_build_llm())
    store = session_store or SessionStore()
    if start_sweeper:
        store.start_sweeper()

    app = Flask(__name__)
    CORS(app)
    app.config["SESSION_STORE"] = store
    app.config["TURN_RESOLVER"] = resolver

    # ═══════════════════════════════════════════
    # CHAT
    # ═══════════════════════════════════════════

    @app.route("/chat", methods=["POST"])
    @app.route("/api/customer-assistant", methods=["POST"])
    def chat():
        """
        Main chat endpoint.

        Request:
            {"query": "chairs under $100", "history": [...], "sessionId": "..."}

        Response:
            {"reply": "...", "kind": "products", "phase": "recommendation",
             "history": [...], "sessionId": "...", "products": [...], ...}
        """
        start_time = time.time()

        # ─── Step 0: Parse and validate ───
        body = request.get_json(silent=True)
        if body is None:
            logger.warning("POST /chat | Invalid JSON body")
            return jsonify({
                "reply": "Invalid request format",
                "error": ErrorKind.VALIDATION.value,
                "fieldErrors": {"body": ["Request body must be valid JSON"]},
            }), 400

        try:
            chat_request = parse_chat_request(body)
        except RequestValidationError as e:
            logger.warning(f"POST /chat | Validation failed | fields={sorted(e.field_errors)}")
            payload = {
                "reply": "Invalid request format",
                "error": ErrorKind.VALIDATION.value,
                "fieldErrors": e.field_errors,
            }
            if isinstance(body, dict) and isinstance(body.get("sessionId"), str):
                payload["sessionId"] = body["sessionId"]
            return jsonify(payload), 400

        # ─── Step 0.5: Session lookup ───
        session = store.get(chat_request.session_id) if chat_request.session_id else None
        if session is None:
            if chat_request.session_id:
                logger.info(f"POST /chat | Unknown session={chat_request.session_id}, creating new")
            session = store.create()
        session_id = session.session_id

        history = chat_request.history if chat_request.history is not None else list(session.history)
        if not history:
            history = [ChatMessage(role="assistant", content=WELCOME_MESSAGE)]
        last_shown = (
            chat_request.last_shown_products
            if chat_request.last_shown_products is not None
            else list(session.last_shown_products)
        )

        query = chat_request.query
        logger.info(
            f'POST /chat | session={session_id} | query="{truncate_for_log(query)}" | '
            f"history={len(history)} | last_shown={len(last_shown)}"
        )

        # ─── Steps 1-9: Resolve the turn ───
        decision: Optional[TurnDecision] = None
        status = 200
        try:
            decision = resolver.resolve(query, history, last_shown)
            reply = render_reply(decision, resolver.store_url or STORE_URL)
            error = decision.error
        except UpstreamError as e:
            logger.error(f"POST /chat | session={session_id} | Upstream error | {e}")
            reply, error, status = random_error_fallback(), e.kind.value, 503
        except Exception:
            logger.exception(f"POST /chat | session={session_id} | Unhandled error")
            reply, error, status = random_error_fallback(), ErrorKind.INTERNAL.value, 500

        # ─── Step 10: Record the turn ───
        assistant_message = ChatMessage(
            role="assistant",
            content=reply,
            pending=decision.pending if decision else None,
        )
        new_history = cap_history(history + [ChatMessage(role="user", content=query), assistant_message])
        if decision is not None and decision.shows_products:
            last_shown = list(decision.products)
        store.upsert(session_id, new_history, last_shown)

        response = {
            "reply": reply,
            "kind": decision.kind.value if decision else "error",
            "phase": _public_phase(decision),
            "history": [m.to_dict() for m in new_history],
            "sessionId": session_id,
        }
        if decision is not None and decision.shows_products:
            response["products"] = [p.to_dict() for p in decision.products]
        if last_shown:
            response["lastShownProducts"] = [p.to_dict() for p in last_shown]
        if decision is not None and decision.redirect:
            response["redirect"] = decision.redirect
        if error:
            response["error"] = error

        logger.info(
            f"Step 10: Response sent | session={session_id} | status={status} | "
            f"kind={response['kind']} | phase={response['phase']} | "
            f"response_time_ms={round((time.time() - start_time) * 1000)}"
        )
        return jsonify(response), status

    @app.route("/chat/refresh", methods=["POST"])
    @app.route("/api/customer-assistant/refresh", methods=["POST"])
    def refresh_session():
        """Reset a session's inactivity deadline."""
        body = request.get_json(silent=True) or {}
        session_id = body.get("sessionId") if isinstance(body, dict) else None
        if not isinstance(session_id, str) or not store.touch(session_id):
            logger.warning(f"POST /chat/refresh | Invalid session={session_id}")
            return jsonify({"success": False, "error": "Invalid session ID"}), 400
        return jsonify({"success": True, "newSessionId": session_id})

    # ═══════════════════════════════════════════
    # INSPECTION
    # ═══════════════════════════════════════════

    @app.route("/session/<session_id>", methods=["GET"])
    def get_session(session_id):
        """Get session history."""
        session = store.get(session_id)
        if session is None:
            return jsonify({"error": "Session not found"}), 404
        return jsonify({"session": session.to_dict()})

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sessions": len(store),
        })

    return app


app = create_app()


if __name__ == "__main__":
    print("=" * 60)
    print("  Shopping Assistant - Chat API Server")
    print("=" * 60)
    print()

    print(f"🚀 Starting server on http://localhost:{PORT}")
    print(f"   POST http://localhost:{PORT}/chat")
    print(f"   POST http://localhost:{PORT}/chat/refresh")
    print(f"   GET  http://localhost:{PORT}/health")
    print()

    app.run(
        host="0.0.0.0",
        port=PORT,
        debug=DEBUG,
    )
