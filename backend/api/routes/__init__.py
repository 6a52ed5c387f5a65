"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter) lives here; every sub-router imports what it
needs from this package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from backend.api.routes.auth import router as auth_router  # noqa: E402
from backend.api.routes.users import router as users_router  # noqa: E402
from backend.api.routes.search import router as search_router  # noqa: E402
from backend.api.routes.schedules import router as schedules_router  # noqa: E402
from backend.api.routes.games import router as games_router  # noqa: E402
from backend.api.routes.live import router as live_router  # noqa: E402
from backend.api.routes.health import router as health_router  # noqa: E402

router = APIRouter()
router.include_router(auth_router)
router.include_router(users_router)
router.include_router(search_router)
router.include_router(schedules_router)
router.include_router(games_router)
router.include_router(live_router)
router.include_router(health_router)
