from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.models.engine import CallerContext, Feedback
from app.models.schemas import ChatMessageRequest, FeedbackRequest
from app.routers.deps import get_caller, require_permission, run_blocking
from app.services.assistant import ConversationManager, suggestions_for_role
from app.services.catalog import get_settings
from app.services.conversations import ConversationStore
from app.services.notifier import manager
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)

store = ConversationStore(history_limit=get_settings().limits.history_limit)
conversations = ConversationManager(store)


@router.post("/message")
async def send_message(req: ChatMessageRequest, caller: CallerContext = Depends(get_caller)):
    """Answer a chatbot message and append both turns to the conversation"""
    reply = await run_blocking(conversations.handle_message, req.message, caller, req.conversation_id)
    await manager.send_to_user(caller.user_id, "chatbot_response", {
        "conversation_id": reply["conversation_id"],
        "response": reply["response"],
        "intent": reply["intent"],
    })
    return {"success": True, "data": reply}


@router.get("/conversation/{conversation_id}")
async def get_conversation(conversation_id: str, caller: CallerContext = Depends(get_caller)):
    history = conversations.history(conversation_id, caller.user_id)
    return {
        "success": True,
        "data": {
            "conversation_id": conversation_id,
            "status": store.status(conversation_id),
            "messages": history,
            "total_messages": len(history),
        },
    }


@router.delete("/conversation/{conversation_id}")
async def clear_conversation(conversation_id: str, caller: CallerContext = Depends(get_caller)):
    existed = conversations.clear(conversation_id, caller.user_id)
    return {
        "success": True,
        "message": "Conversation cleared" if existed else "Conversation had no history",
        "data": {"conversation_id": conversation_id, "cleared": existed},
    }


@router.get("/suggestions")
async def get_suggestions(caller: CallerContext = Depends(get_caller)):
    return {"success": True, "data": {"role": caller.role, "suggestions": suggestions_for_role(caller.role)}}


@router.post("/feedback")
async def submit_feedback(req: FeedbackRequest, caller: CallerContext = Depends(get_caller)):
    conversations.ensure_owner(req.conversation_id, caller.user_id)
    turn = store.add_feedback(
        req.conversation_id,
        req.message_index,
        Feedback(rating=req.rating, comment=req.feedback, user_id=caller.user_id, timestamp=datetime.utcnow()),
    )
    return {"success": True, "message": "Feedback submitted successfully", "data": turn}


@router.get("/analytics")
async def analytics(
    top_users: int = Query(default=10, ge=1, le=100),
    caller: CallerContext = Depends(require_permission("view_analytics")),
):
    return {"success": True, "data": store.analytics(top_users=top_users)}
