"""Rate limiting configuration using slowapi.

Module-level Limiter shared by routers (``@limiter.limit(...)``) and wired
into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Only decorated routes are limited; login is the one that needs it.
limiter = Limiter(key_func=get_remote_address)
