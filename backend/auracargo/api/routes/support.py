from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_auth_context
from auracargo.core.errors import NotFoundError
from auracargo.models.support import SupportConversation, SupportMessage
from auracargo.schemas.support import (
    ConversationResponse,
    CreateConversation,
    CreateGuestConversation,
    MessageResponse,
    PostGuestMessage,
    PostMessage,
)
from auracargo.services import support as support_service
from auracargo.services.support import Perspective

router = APIRouter(prefix="/support", tags=["support"])


def conversation_responses(
    db: Session, conversations: list[SupportConversation]
) -> list[ConversationResponse]:
    counts = support_service.unread_counts(db, [c.id for c in conversations])
    out = []
    for c in conversations:
        resp = ConversationResponse.model_validate(c)
        resp.unread_for_customer = counts[c.id]["customer"]
        resp.unread_for_admin = counts[c.id]["admin"]
        out.append(resp)
    return out


def message_responses(messages: list[SupportMessage]) -> list[MessageResponse]:
    return [MessageResponse.model_validate(m) for m in messages]


def _own_conversation(db: Session, conversation_id: UUID, ctx: AuthContext) -> SupportConversation:
    conversation = support_service.require_conversation(db, conversation_id)
    if conversation.user_id != ctx.profile_id:
        raise NotFoundError("Conversation not found")
    return conversation


@router.get("/conversations", response_model=list[ConversationResponse])
def list_my_conversations(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    conversations = support_service.list_conversations(db, user_id=ctx.profile_id)
    return conversation_responses(db, conversations)


@router.post("/conversations", response_model=ConversationResponse, status_code=201)
def open_conversation(
    dto: CreateConversation,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    conversation = support_service.create_conversation(
        db, dto.title, dto.content, user=ctx.profile
    )
    return conversation_responses(db, [conversation])[0]


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageResponse])
def get_messages(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _own_conversation(db, conversation_id, ctx)
    support_service.mark_read(db, conversation_id, Perspective.CUSTOMER)
    return message_responses(support_service.list_messages(db, conversation_id))


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
def post_message(
    conversation_id: UUID,
    dto: PostMessage,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _own_conversation(db, conversation_id, ctx)
    message = support_service.append_message(
        db, conversation_id, dto.content, is_admin=False, sender=ctx.profile
    )
    return MessageResponse.model_validate(message)


# Guest chat: no account, the conversation is bound to the guest's email.

@router.post("/guest/conversations", response_model=ConversationResponse, status_code=201)
def open_guest_conversation(
    dto: CreateGuestConversation,
    db: Session = Depends(get_db),
):
    conversation = support_service.create_conversation(
        db,
        dto.title,
        dto.content,
        guest_name=dto.guest_name,
        guest_email=dto.guest_email,
    )
    return conversation_responses(db, [conversation])[0]


@router.get(
    "/guest/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
)
def get_guest_messages(
    conversation_id: UUID,
    guest_email: str = Query(..., min_length=3),
    db: Session = Depends(get_db),
):
    support_service.require_guest_conversation(db, conversation_id, guest_email)
    support_service.mark_read(db, conversation_id, Perspective.CUSTOMER)
    return message_responses(support_service.list_messages(db, conversation_id))


@router.post(
    "/guest/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
def post_guest_message(
    conversation_id: UUID,
    dto: PostGuestMessage,
    db: Session = Depends(get_db),
):
    conversation = support_service.require_guest_conversation(
        db, conversation_id, dto.guest_email
    )
    message = support_service.append_message(
        db,
        conversation_id,
        dto.content,
        is_admin=False,
        guest_name=conversation.guest_name,
        guest_email=conversation.guest_email,
    )
    return MessageResponse.model_validate(message)

