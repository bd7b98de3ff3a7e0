"""
api/limiter.py -- Login throttling for the credential endpoints.

POST /api/auth/login is the only route with a limit (LOGIN_RATE_LIMIT per
client IP). create_app() registers this object on app.state and mounts
SlowAPIMiddleware around it; routes/auth.py decorates the login handler.

Counters live in process memory, so a restart clears them and each worker of a
multi-process deployment counts separately. Tests call limiter.reset() between
cases.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

LOGIN_RATE_LIMIT = "10/minute"

# Keyed on the peer address; behind a proxy run uvicorn with --proxy-headers.
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
