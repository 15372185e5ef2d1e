from __future__ import annotations

from signup_intake.api.routes.health import router as health_router
from signup_intake.api.routes.signups import router as signups_router

__all__ = ["health_router", "signups_router"]
