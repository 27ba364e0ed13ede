from __future__ import annotations

from typing import Any


class PreviewError(Exception):
    """Base class for structural faults raised by the preview layer."""


class MalformedIdentifier(PreviewError):
    def __init__(self, identifier: str):
        super().__init__(f"Illegal setting id: {identifier}")
        self.identifier = identifier


class RouteNotFound(PreviewError):
    def __init__(self, route: str, method: str | None = None):
        msg = f"No route was found matching the URL and request method: {method} /{route}" if method else f"No route found: /{route}"
        super().__init__(msg)
        self.route = route
        self.method = method


class RouteResolutionError(PreviewError):
    """A resource self-link does not live under the known API base URL."""

    def __init__(self, self_href: str, base_url: str):
        super().__init__(f"Unable to locate {base_url} in {self_href}")
        self.self_href = self_href
        self.base_url = base_url


class FieldValidationError(PreviewError):
    """
    Per-field validation failure. Validators return these rather than
    raising them; the dispatcher merges them into a ValidationErrorCollection.
    """

    def __init__(self, code: str, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class SessionNotFound(PreviewError):
    def __init__(self, session_id: str):
        super().__init__(f"Preview session not found: {session_id}")
        self.session_id = session_id
