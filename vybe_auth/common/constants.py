import contextvars
from typing import Optional

# Context variables for request and trace id
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)

SESSION_CACHE_PREFIX = "session"
VERIFICATION_PREFIX = "verification"
