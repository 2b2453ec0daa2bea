"""
In-memory conversation history for the chatbot.

History lives for the lifetime of the process and is lost on restart.
A conversation is NEW until its first turn is stored, then ACTIVE;
clearing it discards the history and returns it to NEW.
"""
import threading
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List

from app.models.engine import ConversationTurn, Feedback
from app.utils.exceptions import NotFoundError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def conversation_owner(conversation_id: str) -> str:
    return conversation_id.rsplit("_", 1)[0]


class ConversationStore:
    """Process-wide map of conversation id to its most recent turns"""

    STATUS_NEW = "new"
    STATUS_ACTIVE = "active"

    def __init__(self, history_limit: int = 50):
        self.history_limit = history_limit
        self._conversations: Dict[str, List[ConversationTurn]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._conversations)

    def status(self, conversation_id: str) -> str:
        return self.STATUS_ACTIVE if self._conversations.get(conversation_id) else self.STATUS_NEW

    def append(self, conversation_id: str, turn: ConversationTurn) -> List[ConversationTurn]:
        with self._lock:
            history = self._conversations.get(conversation_id, []) + [turn]
            self._conversations[conversation_id] = history[-self.history_limit:]
            return list(self._conversations[conversation_id])

    def get_history(self, conversation_id: str) -> List[ConversationTurn]:
        return list(self._conversations.get(conversation_id, []))

    def recent(self, conversation_id: str, count: int) -> List[ConversationTurn]:
        return self.get_history(conversation_id)[-count:]

    def clear(self, conversation_id: str) -> bool:
        with self._lock:
            removed = self._conversations.pop(conversation_id, None) is not None
        logger.info(f"Cleared conversation {conversation_id} (existed={removed})")
        return removed

    def add_feedback(self, conversation_id: str, message_index: int, feedback: Feedback) -> ConversationTurn:
        with self._lock:
            history = self._conversations.get(conversation_id)
            if not history or not 0 <= message_index < len(history):
                raise NotFoundError(
                    "Message not found",
                    resource="conversation_message",
                    resource_id=f"{conversation_id}#{message_index}",
                )
            turn = history[message_index].model_copy(update={"feedback": feedback})
            history[message_index] = turn

        logger.info(
            f"Chatbot feedback recorded for {conversation_id}#{message_index}: rating={feedback.rating}",
            extra={
                "conversation_id": conversation_id,
                "message_index": message_index,
                "rating": feedback.rating,
                "intent": turn.intent.category if turn.intent else None,
            }
        )
        return turn

    def analytics(self, top_users: int = 10) -> Dict[str, Any]:
        with self._lock:
            snapshot = {cid: list(turns) for cid, turns in self._conversations.items()}

        total_conversations = len(snapshot)
        total_messages = sum(len(turns) for turns in snapshot.values())
        ratings = [t.feedback.rating for turns in snapshot.values() for t in turns if t.feedback]
        intents = Counter(
            t.intent.category
            for turns in snapshot.values() for t in turns
            if t.role == "assistant" and t.intent
        )
        users = Counter(conversation_owner(cid) for cid in snapshot)
        now = datetime.utcnow()

        return {
            "overview": {
                "total_conversations": total_conversations,
                "total_messages": total_messages,
                "average_messages_per_conversation": total_messages / total_conversations if total_conversations else 0,
                "total_feedback": len(ratings),
                "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else 0,
            },
            "intents": dict(intents),
            "top_users": [
                {"user_id": user_id, "conversation_count": count}
                for user_id, count in users.most_common(top_users)
            ],
            "period": {"start": now - timedelta(days=30), "end": now},
        }
