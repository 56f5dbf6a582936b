"""
api/limiter.py -- The one slowapi Limiter of the process.

api/main.py registers it on app.state for SlowAPIMiddleware and
api/routes/auth.py decorates POST /login with it. Counters live in memory,
keyed by client IP, so they reset on restart and are not shared between
worker processes.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

# Read once at import; the login decorator is applied at import time too.
LOGIN_RATE_LIMIT = get_settings().login_rate_limit
