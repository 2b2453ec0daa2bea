"""
Chatbot response generation and conversation handling
"""
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from app.helpers.prompts import ASSISTANT_PROMPT, DATE_NOTE, GENERIC_RESPONSE, RESPONSE_TEMPLATES, ROLE_ADDENDA
from app.models.engine import (
    AssistantReply, CallerContext, ConversationTurn, Entities, Intent,
)
from app.models.settings import Catalog, EngineSettings, RoleSuggestion
from app.services.catalog import get_catalog, get_settings
from app.services.conversations import ConversationStore, conversation_owner
from app.services.intents import classify, extract_entities
from app.utils.exceptions import AuthorizationError, ExternalServiceError
from app.utils.logging_config import get_logger
from app.utils.utils import llm_available, ollama_generate

logger = get_logger(__name__)

APPROVERS = {"employee": "your manager", "manager": "HR", "hr": "the HR lead", "admin": "HR"}


def build_suggestions(intent: Intent, role: str, catalog: Catalog, limit: int) -> List[str]:
    """Role entries first, then the base list, then intent entries; unique and capped"""
    ordered = (
        catalog.suggestions.roles.get(role, [])
        + catalog.suggestions.base
        + catalog.suggestions.intents.get(intent.category, [])
    )
    out = []
    for text in ordered:
        if text not in out:
            out.append(text)
        if len(out) == limit:
            break
    return out


def suggestions_for_role(role: str, catalog: Catalog = None) -> List[RoleSuggestion]:
    catalog = catalog or get_catalog()
    return catalog.role_suggestions.get(role) or catalog.role_suggestions.get("employee", [])


def _history_text(history: List[ConversationTurn]) -> str:
    return "\n".join(f"{t.role}: {t.content}" for t in history) or "(none)"


class ConversationManager:
    """Classifies chatbot messages, answers them and keeps the conversation history"""

    def __init__(
        self,
        store: ConversationStore,
        catalog: Catalog = None,
        settings: EngineSettings = None,
        generate: Optional[Callable[[str], str]] = None,
    ):
        self.store = store
        self.catalog = catalog or get_catalog()
        self.settings = settings or get_settings()
        self.generate = generate if generate is not None else (ollama_generate if llm_available() else None)

    # ---- responses ----
    def _template_response(self, query: str, intent: Intent, entities: Entities, context: CallerContext) -> str:
        values = {
            "greeting": f"Hi {context.name}, " if context.name else "",
            "approver": APPROVERS.get(context.role, "your manager"),
            "department": f"the {context.department} team" if context.department else "your team",
        }
        template = RESPONSE_TEMPLATES.get(intent.category)
        if template is None:
            return self._generic_response(query, context, values)

        parts = [template.format(**values)]
        addendum = ROLE_ADDENDA.get((intent.category, context.role))
        if addendum:
            parts.append(addendum)
        if intent.category == "leave_request" and entities.dates:
            parts.append(DATE_NOTE.format(dates=", ".join(entities.dates)))
        return " ".join(parts)

    def _generic_response(self, query: str, context: CallerContext, values: Dict[str, str]) -> str:
        fallback = GENERIC_RESPONSE.format(**values)
        if self.generate is None:
            return fallback
        prompt = ASSISTANT_PROMPT.format(
            name=context.name or "Employee",
            role=context.role,
            department=context.department or "unknown department",
            history=_history_text(context.history),
            query=query,
        )
        try:
            return self.generate(prompt) or fallback
        except ExternalServiceError as e:
            logger.warning(f"LLM response unavailable, using canned response: {e.message}")
            return fallback

    def respond(self, query: str, context: CallerContext) -> AssistantReply:
        intent = classify(query, self.catalog, self.settings)
        entities = extract_entities(query)
        response = self._template_response(query, intent, entities, context)
        return AssistantReply(
            response=response,
            intent=intent,
            entities=entities,
            suggestions=build_suggestions(intent, context.role, self.catalog, self.settings.limits.max_suggestions),
        )

    # ---- conversations ----
    @staticmethod
    def new_conversation_id(user_id: str) -> str:
        return f"{user_id}_{int(time.time() * 1000)}"

    @staticmethod
    def ensure_owner(conversation_id: str, user_id: str) -> None:
        if conversation_owner(conversation_id) != user_id:
            raise AuthorizationError("Access denied to this conversation", resource=conversation_id)

    def handle_message(self, message: str, caller: CallerContext, conversation_id: str = None) -> Dict:
        conversation_id = conversation_id or self.new_conversation_id(caller.user_id)
        self.ensure_owner(conversation_id, caller.user_id)

        history = self.store.append(conversation_id, ConversationTurn(role="user", content=message))
        context = caller.model_copy(update={"history": history[-self.settings.limits.context_window:]})

        reply = self.respond(message, context)
        self.store.append(conversation_id, ConversationTurn(
            role="assistant",
            content=reply.response,
            intent=reply.intent,
            confidence=reply.intent.confidence,
        ))
        logger.info(
            f"Chatbot message handled: conversation={conversation_id} intent={reply.intent.category} "
            f"confidence={reply.intent.confidence:.2f}"
        )
        return {
            "conversation_id": conversation_id,
            "response": reply.response,
            "intent": reply.intent,
            "confidence": reply.intent.confidence,
            "entities": reply.entities,
            "suggestions": reply.suggestions,
            "timestamp": datetime.utcnow(),
        }

    def history(self, conversation_id: str, user_id: str) -> List[ConversationTurn]:
        self.ensure_owner(conversation_id, user_id)
        return self.store.get_history(conversation_id)

    def clear(self, conversation_id: str, user_id: str) -> bool:
        self.ensure_owner(conversation_id, user_id)
        return self.store.clear(conversation_id)
