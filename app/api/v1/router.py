from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.audit import router as audit_router

# REQUEST LIFECYCLE
from app.api.v1.requests import router as requests_router
from app.api.v1.review import router as review_router

# LEDGER MIRROR / DASHBOARD
from app.api.v1.ledger import router as ledger_router
from app.api.v1.dashboard import router as dashboard_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])
v1_router.include_router(audit_router, tags=["audit"])

# ------------------------------------------------------------------
# SUBMISSION / GOVERNMENT REVIEW
# ------------------------------------------------------------------
v1_router.include_router(requests_router, tags=["requests"])
v1_router.include_router(review_router, tags=["review"])

# ------------------------------------------------------------------
# LEDGER / DASHBOARD
# ------------------------------------------------------------------
v1_router.include_router(ledger_router, tags=["ledger"])
v1_router.include_router(dashboard_router, tags=["dashboard"])
