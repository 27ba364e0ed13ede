from fastapi import Request

from app.core.config import settings
from app.core.route_identity import normalize_route


def rest_url(request: Request, route: str = "") -> str:
    """
    Absolute URL of an API route, e.g. http://host/api/widgets/5.
    With no route this is the base URL every self-link starts with.
    """
    base = str(request.base_url).rstrip("/") + settings.api_prefix + "/"
    return base + normalize_route(route)
