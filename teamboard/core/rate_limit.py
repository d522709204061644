from slowapi import Limiter
from slowapi.util import get_remote_address

from teamboard.core.config import settings

# Decorators bind at import time; routes only apply limits when
# ENABLE_RATE_LIMITING was on when they were imported.
limiter = Limiter(key_func=get_remote_address, enabled=settings.ENABLE_RATE_LIMITING)
