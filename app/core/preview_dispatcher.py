from __future__ import annotations

import json
import logging
from typing import Any

from app.core.config import settings
from app.core.field_schema import ValidationErrorCollection, apply_field_schema
from app.core.rest_server import RestRequest, RestServer, loads_json
from app.core.route_identity import RouteIdentity

logger = logging.getLogger(__name__)


def encode_canonical(data: Any) -> str:
    # stable encoding so equal edits compare equal
    return json.dumps(data, sort_keys=True, default=str, allow_nan=False)


def _reencode_raw(raw_value: str | bytes | None) -> str:
    if isinstance(raw_value, bytes):
        raw_value = raw_value.decode("utf-8", errors="replace")
    try:
        return encode_canonical(loads_json(raw_value))
    except (TypeError, ValueError):
        return encode_canonical(raw_value)


def validate_edit(
    server: RestServer,
    route: RouteIdentity,
    raw_value: str | bytes | None,
    *,
    strict: bool = False,
    validating_all: bool = False,
    reject_undecodable: bool | None = None,
) -> str | ValidationErrorCollection:
    """
    Canonicalize a raw edit payload against the route's field schema without
    running the route's handler.

    Returns the canonical JSON string on success, or the collected errors.
    RouteNotFound propagates when the route does not resolve.
    """
    if validating_all:
        strict = True
    if reject_undecodable is None:
        reject_undecodable = settings.PREVIEW_REJECT_UNDECODABLE

    request = RestRequest(method="PUT", route=route.path, body=raw_value)
    server.dispatch(request, execute_side_effects=False)

    data = request.get_json_params()
    if data is None:
        if reject_undecodable:
            errors = ValidationErrorCollection()
            errors.add("invalid_payload", "Value must be a JSON object", {"route": str(route)})
            logger.info("rejected non-object payload for %s", route)
            return errors
        logger.warning("payload for %s is not a JSON object; passing it through unchanged", route)
        return _reencode_raw(raw_value)

    errors = apply_field_schema(data, request.args, strict=strict)
    if errors:
        logger.info("validation failed for %s: %s", route, ", ".join(errors.codes))
        return errors

    try:
        return encode_canonical(data)
    except ValueError:
        # a custom sanitizer produced NaN or Infinity
        errors.add("invalid_payload", "Value contains a non-finite number", {"route": str(route)})
        return errors
