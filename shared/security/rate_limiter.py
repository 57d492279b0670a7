from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def client_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Upstream gateways identify the end client with X-Client-Id; direct callers
    fall back to the remote address.
    """
    client_id = request.headers.get("X-Client-Id")
    if client_id:
        return f"client:{client_id}"
    return f"ip:{get_remote_address(request)}"


# Initialize the Limiter with our custom key function
limiter = Limiter(key_func=client_id_or_ip)
