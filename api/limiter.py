"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in route modules (to
apply per-route limits with @limiter.limit()).

A single shared instance means all routes share one in-memory counter store.
RATE_LIMIT_ENABLED=false turns every limit off; the test suite does this so
repeated logins from the TestClient address are not throttled.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://", enabled=_settings.rate_limit_enabled)

# Applied to /login, /signup and the code-sending routes.
AUTH_RATE_LIMIT = _settings.login_rate_limit
