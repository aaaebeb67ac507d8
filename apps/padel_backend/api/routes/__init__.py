"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error helpers) lives here; every
sub-router imports what it needs from this package.
"""

import logging
import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from padel_backend.utils.exceptions import PadelError

logger = logging.getLogger(__name__)

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
# Shared error helper
# ---------------------------------------------------------------------------
def unexpected_error(action: str, e: Exception) -> HTTPException:
    """
    Log an unexpected failure and wrap it as a 500.

    Domain errors and HTTPExceptions are re-raised by the handlers before
    reaching this point, so anything here is a database or programming error.
    The exception text goes to the log only.
    """
    logger.error(f"Error {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Error {action}")


DOMAIN_ERRORS = (PadelError, HTTPException)

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from padel_backend.api.routes.leagues import router as leagues_router  # noqa: E402
from padel_backend.api.routes.calendar import router as calendar_router  # noqa: E402
from padel_backend.api.routes.teams import router as teams_router  # noqa: E402
from padel_backend.api.routes.users import router as users_router  # noqa: E402
from padel_backend.api.routes.notifications import router as notifications_router  # noqa: E402

router = APIRouter()
router.include_router(leagues_router)
router.include_router(calendar_router)
router.include_router(teams_router)
router.include_router(users_router)
router.include_router(notifications_router)
