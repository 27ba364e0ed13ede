from __future__ import annotations

import re
from dataclasses import dataclass, field

from app.core.errors import MalformedIdentifier

SETTING_TYPE = "rest_resource"

_SETTING_ID_RE = re.compile(r"^" + SETTING_TYPE + r"\[(?P<route>.+?)\]$")


def normalize_route(route: str) -> str:
    """Trim leading/trailing separators. Idempotent."""
    return route.strip("/")


@dataclass(frozen=True)
class RouteIdentity:
    normalized: str
    raw: str = field(default="", compare=False)

    @classmethod
    def from_route(cls, route: str) -> "RouteIdentity":
        return cls(normalized=normalize_route(route), raw=route)

    @property
    def path(self) -> str:
        # leading slash form used when dispatching
        return "/" + self.normalized

    def __str__(self) -> str:
        return self.normalized


def parse_setting_id(identifier: str) -> RouteIdentity:
    """
    Parse `rest_resource[<route>]` into a RouteIdentity.

    Raises MalformedIdentifier when the id does not have that shape.
    """
    m = _SETTING_ID_RE.match(identifier or "")
    if not m:
        raise MalformedIdentifier(identifier)
    route = normalize_route(m.group("route"))
    if not route:
        raise MalformedIdentifier(identifier)
    return RouteIdentity(normalized=route, raw=identifier)


def setting_id_for(route: str) -> str:
    return f"{SETTING_TYPE}[{normalize_route(route)}]"
