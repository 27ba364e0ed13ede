from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from app.core.errors import RouteNotFound
from app.core.field_schema import FieldSchemaEntry, apply_field_schema, missing_required, schema_map
from app.core.route_identity import normalize_route

logger = logging.getLogger(__name__)


def _reject_constant(name: str):
    raise ValueError(f"Non-finite number not allowed: {name}")


def loads_json(raw: str | bytes) -> Any:
    """json.loads that rejects NaN and Infinity literals."""
    return json.loads(raw, parse_constant=_reject_constant)


@dataclass
class RestRequest:
    method: str
    route: str
    body: str | bytes | None = None
    attributes: dict = field(default_factory=dict)
    url_params: dict = field(default_factory=dict)
    query: dict = field(default_factory=dict)
    params: dict | None = None

    def get_json_params(self) -> dict | None:
        """Decode the body as a JSON object; None when it is not one."""
        if self.body is None or self.body == "" or self.body == b"":
            return None
        try:
            data = loads_json(self.body)
        except (TypeError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    @property
    def args(self) -> dict[str, FieldSchemaEntry]:
        return self.attributes.get("args", {})


@dataclass
class RestResponse:
    data: Any = None
    status: int = 200


Handler = Callable[..., RestResponse]


@dataclass
class RestRoute:
    pattern: str
    methods: frozenset[str]
    args: dict[str, FieldSchemaEntry]
    handler: Handler
    regex: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        self.regex = re.compile("^" + normalize_route(self.pattern) + "$")


class RestServer:
    """
    Route table + dispatch pipeline for API-backed resources.

    dispatch() always resolves the route and shapes the request (schema and
    URL params attached). With execute_side_effects=False it stops there and
    the handler is never called.
    """

    def __init__(self):
        self._routes: list[RestRoute] = []

    def register_route(
        self,
        pattern: str,
        methods: list[str] | tuple[str, ...],
        handler: Handler,
        args: list[FieldSchemaEntry] | None = None,
    ) -> RestRoute:
        route = RestRoute(
            pattern=pattern,
            methods=frozenset(m.upper() for m in methods),
            args=schema_map(args or []),
            handler=handler,
        )
        self._routes.append(route)
        return route

    def resolve(self, route: str, method: str) -> tuple[RestRoute, dict]:
        path = normalize_route(route)
        method = method.upper()
        for r in self._routes:
            m = r.regex.match(path)
            if m and method in r.methods:
                return r, m.groupdict()
        raise RouteNotFound(path, method)

    def resolve_schema(self, route: str, method: str = "PUT") -> dict[str, FieldSchemaEntry]:
        r, _ = self.resolve(route, method)
        return r.args

    def dispatch(self, request: RestRequest, *, execute_side_effects: bool = True, **context) -> RestResponse:
        route, url_params = self.resolve(request.route, request.method)
        request.attributes = {
            "pattern": route.pattern,
            "methods": sorted(route.methods),
            "args": route.args,
        }
        request.url_params = url_params

        if not execute_side_effects:
            logger.debug("resolve-only dispatch %s /%s", request.method, normalize_route(request.route))
            return RestResponse(data=request.get_json_params())

        data = request.get_json_params()
        if data is None:
            if request.body:
                return RestResponse(
                    status=400,
                    data={"code": "rest_invalid_json", "message": "Invalid JSON body passed."},
                )
            data = {}

        if request.method.upper() == "POST":
            missing = missing_required(data, route.args)
            if missing:
                return RestResponse(
                    status=400,
                    data={
                        "code": "rest_missing_callback_param",
                        "message": f"Missing parameter(s): {', '.join(missing)}",
                        "params": missing,
                    },
                )

        errors = apply_field_schema(data, route.args, strict=True)
        if errors:
            return RestResponse(
                status=400,
                data={
                    "code": "rest_invalid_param",
                    "message": "Invalid parameter(s)",
                    "errors": errors.as_list(),
                },
            )

        request.params = data
        return route.handler(request, **context)


rest_server = RestServer()
