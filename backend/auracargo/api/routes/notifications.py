from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_auth_context
from auracargo.schemas.notification import CreateNotification, NotificationResponse
from auracargo.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return notification_service.list_for_user(db, ctx.profile_id, unread_only=unread_only)


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return {"unread": notification_service.unread_count(db, ctx.profile_id)}


@router.post("", response_model=NotificationResponse, status_code=201)
def create_for_self(
    dto: CreateNotification,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return notification_service.notify(db, ctx.profile_id, dto.title, dto.content)


@router.post("/read-all")
def read_all(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return {"updated": notification_service.mark_all_read(db, ctx.profile_id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def read_one(
    notification_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return notification_service.mark_read(db, ctx.profile_id, notification_id)
