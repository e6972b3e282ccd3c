from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_admin_context
from auracargo.api.routes.support import conversation_responses, message_responses
from auracargo.models.support import ConversationStatus
from auracargo.schemas.support import ConversationResponse, MessageResponse, PostMessage
from auracargo.services import support as support_service
from auracargo.services.support import Perspective

router = APIRouter(prefix="/admin/support", tags=["admin-support"])


@router.get("/conversations", response_model=list[ConversationResponse])
def list_all(
    status: ConversationStatus | None = Query(None),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    conversations = support_service.list_conversations(
        db, status=status.value if status else None, search=search
    )
    return conversation_responses(db, conversations)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
)
def get_messages(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    support_service.mark_read(db, conversation_id, Perspective.ADMIN)
    return message_responses(support_service.list_messages(db, conversation_id))


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
def reply(
    conversation_id: UUID,
    dto: PostMessage,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_admin_context),
):
    message = support_service.append_message(
        db, conversation_id, dto.content, is_admin=True, sender=ctx.profile
    )
    return MessageResponse.model_validate(message)


@router.post("/conversations/{conversation_id}/close", response_model=ConversationResponse)
def close(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    conversation = support_service.set_status(db, conversation_id, ConversationStatus.CLOSED)
    return conversation_responses(db, [conversation])[0]


@router.post("/conversations/{conversation_id}/reopen", response_model=ConversationResponse)
def reopen(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    conversation = support_service.set_status(db, conversation_id, ConversationStatus.OPEN)
    return conversation_responses(db, [conversation])[0]
