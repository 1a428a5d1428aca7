from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from shared.config.settings import RATE_LIMIT_ENABLED, CHECKOUT_RATE_LIMIT

def client_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Checkout is anonymous, so buyers are throttled by the first hop in
    X-Forwarded-For when a proxy sets it, otherwise by the socket address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request)}"

limiter = Limiter(key_func=client_ip, enabled=RATE_LIMIT_ENABLED)

checkout_rate_limit = CHECKOUT_RATE_LIMIT
