"""
Request rate limiting.

The limiter is keyed by client address. ``default_limits`` applies to every
route through the middleware; routes with side effects add their own
tighter limit with ``@limiter.limit``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from tussles.core.config import get_settings

ORDER_CREATE_LIMIT = "30/minute"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[get_settings().rate_limit_default],
)
