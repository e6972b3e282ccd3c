import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.background import BackgroundScheduler

from auracargo.config import settings
from auracargo.core.errors import PortalError
from auracargo.database import Base, engine

# Import all models so they are registered with Base.metadata before create_all
import auracargo.models  # noqa: F401

from auracargo.api.routes import (
    app_routes,
    auth,
    shipments,
    tracking,
    notifications,
    support,
    payments,
    admin_shipments,
    admin_support,
    admin_payments,
    admin_users,
    ws,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
# Suppress SQL echo/logging (engine already has echo=False)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

# Ensure DB tables exist for SQLAlchemy models
try:
    Base.metadata.create_all(bind=engine)
except Exception as e:
    logger.warning(
        "Database not available (tables not created): %s. "
        "Set DATABASE_URL or db_* env vars and ensure PostgreSQL is running.",
        e,
    )


def _scheduled_payment_reconcile_job():
    from auracargo.database import SessionLocal
    from auracargo.services.payment_gateway import get_payment_gateway
    from auracargo.services.payments import reconcile_pending
    db = SessionLocal()
    try:
        settled = reconcile_pending(db, get_payment_gateway())
        logger.info("Payment reconciliation settled %d pending payments", settled)
    except Exception as e:
        logger.exception("Payment reconciliation failed: %s", e)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Optional: re-verify pending payments when payment_reconcile_enabled is True
    scheduler = None
    if settings.payment_reconcile_enabled:
        scheduler = BackgroundScheduler()
        interval = max(1, settings.payment_reconcile_interval_minutes)
        scheduler.add_job(
            _scheduled_payment_reconcile_job,
            "interval",
            minutes=interval,
            id="payment_reconcile",
        )
        scheduler.start()
        logger.info(
            "Payment reconciliation scheduler started (interval=%d minutes)", interval
        )
    if settings.seed_demo_data:
        try:
            from auracargo.seed import seed_all_if_empty
            seed_all_if_empty()
        except Exception as e:
            logger.warning("Seed skipped (non-fatal): %s", e)
    yield
    if scheduler:
        scheduler.shutdown()


app = FastAPI(
    title="AuraCargo Shipment Portal API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(app_routes.router)
app.include_router(auth.router)
app.include_router(shipments.router)
app.include_router(tracking.router)
app.include_router(notifications.router)
app.include_router(support.router)
app.include_router(payments.router)
app.include_router(admin_shipments.router)
app.include_router(admin_support.router)
app.include_router(admin_payments.router)
app.include_router(admin_users.router)
app.include_router(ws.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.env == "development",
    )
