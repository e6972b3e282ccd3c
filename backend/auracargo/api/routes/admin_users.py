"""Back-office users, dashboard stats and report downloads."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_admin_context
from auracargo.schemas.profile import AdminProfileUpdate, ProfileResponse
from auracargo.services import profiles as profile_service
from auracargo.services.payments import payment_stats
from auracargo.services.reports import generate_report
from auracargo.services.shipments import status_counts
from auracargo.services.support import support_stats

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[ProfileResponse])
def list_users(
    search: str | None = Query(None),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return profile_service.list_profiles(db, search=search)


@router.put("/users/{profile_id}", response_model=ProfileResponse)
def update_user(
    profile_id: UUID,
    dto: AdminProfileUpdate,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return profile_service.update_profile(db, profile_id, dto.model_dump())


@router.get("/stats")
def dashboard_stats(
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return {
        "shipments": status_counts(db),
        "support": support_stats(db),
        "payments": payment_stats(db),
    }


@router.get("/reports/{report_type}")
def download_report(
    report_type: str,
    date_range: str = Query("last_30_days"),
    file_format: str = Query("csv"),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    filename, content, media_type = generate_report(
        db, report_type, date_range=date_range, file_format=file_format
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
