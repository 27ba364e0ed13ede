from __future__ import annotations

import json
import logging
from typing import Any

from app.core.errors import RouteResolutionError
from app.core.preview_registry import PreviewRegistry

logger = logging.getLogger(__name__)


def self_href(resource: Any) -> str | None:
    """`_links.self[0].href` of a resource, or None when it has none."""
    if not isinstance(resource, dict):
        return None
    links = resource.get("_links")
    if not isinstance(links, dict):
        return None
    self_links = links.get("self")
    if not isinstance(self_links, list) or not self_links:
        return None
    first = self_links[0]
    if not isinstance(first, dict):
        return None
    href = first.get("href")
    return href if isinstance(href, str) else None


class ResponseOverlayFilter:
    """
    Rewrites an API response body so every resource whose self-link matches a
    previewed route shows the pending value instead of the stored one.
    """

    def __init__(self, registry: PreviewRegistry, base_url: str):
        self.registry = registry
        self.base_url = base_url

    def __call__(self, body: Any) -> Any:
        return self.overlay(body)

    def overlay(self, body: Any) -> Any:
        if isinstance(body, dict) and "_links" in body:
            return self._overlay_isolated(body)
        if isinstance(body, list):
            return [self.overlay(item) for item in body]
        if isinstance(body, dict):
            return {key: self.overlay(value) for key, value in body.items()}
        return body

    def _overlay_isolated(self, resource: dict) -> Any:
        try:
            return self.overlay_single(resource)
        except RouteResolutionError as e:
            logger.warning("preview overlay skipped: %s", e)
            return resource

    def route_for(self, href: str) -> str:
        if not href.startswith(self.base_url):
            raise RouteResolutionError(href, self.base_url)
        return href[len(self.base_url):].split("?", 1)[0]

    def overlay_single(self, resource: Any) -> Any:
        href = self_href(resource)
        if href is None:
            return self._overlay_embedded(resource)

        route = self.route_for(href)
        pending = self.registry.lookup(route)
        if pending is None or not pending.is_valid:
            return self._overlay_embedded(resource)

        return json.loads(pending.canonical_value)

    def _overlay_embedded(self, resource: Any) -> Any:
        if not isinstance(resource, dict):
            return resource
        embedded = resource.get("_embedded")
        if not isinstance(embedded, dict):
            return resource
        out = dict(resource)
        out["_embedded"] = {key: self.overlay(value) for key, value in embedded.items()}
        return out
