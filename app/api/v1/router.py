from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.opportunities import router as opportunities_router
from app.api.v1.assignments import router as assignments_router
from app.api.v1.feedback import router as feedback_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# OPPORTUNITIES / LIFECYCLE
# ------------------------------------------------------------------
v1_router.include_router(opportunities_router, tags=["opportunities"])

# ------------------------------------------------------------------
# SIGN-UPS
# ------------------------------------------------------------------
v1_router.include_router(assignments_router, tags=["assignments"])

# ------------------------------------------------------------------
# FEEDBACK
# ------------------------------------------------------------------
v1_router.include_router(feedback_router, tags=["feedback"])
