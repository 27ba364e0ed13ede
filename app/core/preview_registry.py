from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator

from app.core.field_schema import ValidationErrorCollection
from app.core.preview_dispatcher import validate_edit
from app.core.rest_server import RestServer
from app.core.route_identity import RouteIdentity, normalize_route, parse_setting_id
from app.core.errors import SessionNotFound

logger = logging.getLogger(__name__)


@dataclass
class PendingEdit:
    route: RouteIdentity
    raw_value: str | bytes | None = None
    canonical_value: str | None = None
    errors: ValidationErrorCollection = field(default_factory=ValidationErrorCollection)

    @property
    def is_valid(self) -> bool:
        return self.canonical_value is not None and not self.errors


class PreviewRegistry:
    """normalized route -> PendingEdit, for one preview session."""

    def __init__(self):
        self._edits: dict[str, PendingEdit] = {}

    def mark_for_preview(self, setting: "RestResourceSetting") -> None:
        # re-marking replaces the record for the route
        self._edits[setting.route.normalized] = setting.pending

    def lookup(self, route: str | RouteIdentity) -> PendingEdit | None:
        key = route.normalized if isinstance(route, RouteIdentity) else normalize_route(route)
        return self._edits.get(key)

    def routes(self) -> list[str]:
        return list(self._edits)

    def reset(self) -> None:
        self._edits.clear()

    def __contains__(self, route) -> bool:
        return self.lookup(route) is not None

    def __len__(self) -> int:
        return len(self._edits)


class RestResourceSetting:
    """
    A `rest_resource[<route>]` setting: holds the pending value for one
    API resource while it is being previewed.
    """

    def __init__(self, setting_id: str, session: "PreviewSession"):
        self.id = setting_id
        self.route = parse_setting_id(setting_id)
        self.session = session
        self.pending = PendingEdit(route=self.route)
        self.is_previewed = False

    def sanitize(self, value: str | bytes | None, strict: bool = False) -> str | ValidationErrorCollection:
        result = validate_edit(
            self.session.server,
            self.route,
            value,
            strict=strict,
            validating_all=self.session.is_validating_all,
        )
        self.pending.raw_value = value
        if isinstance(result, ValidationErrorCollection):
            self.pending.canonical_value = None
            self.pending.errors = result
        else:
            self.pending.canonical_value = result
            self.pending.errors = ValidationErrorCollection()
        return result

    def preview(self) -> bool:
        self.session.registry.mark_for_preview(self)
        self.is_previewed = True
        return True

    def post_value(self) -> str | None:
        return self.pending.canonical_value if self.pending.is_valid else None

    def value(self) -> str | None:
        # only dirty settings exist in a session, so the pending value is the value
        return self.post_value()


class PreviewSession:
    def __init__(self, server: RestServer, session_id: str | None = None):
        self.id = session_id or str(uuid.uuid4())
        self.server = server
        self.registry = PreviewRegistry()
        self.settings: dict[str, RestResourceSetting] = {}
        self.created_at = datetime.utcnow()
        self._validating_all = False

    @property
    def is_validating_all(self) -> bool:
        return self._validating_all

    @contextmanager
    def validating_all(self) -> Iterator["PreviewSession"]:
        self._validating_all = True
        try:
            yield self
        finally:
            self._validating_all = False

    def get_setting(self, setting_id: str) -> RestResourceSetting:
        setting = self.settings.get(setting_id)
        if setting is None:
            setting = RestResourceSetting(setting_id, self)
            self.settings[setting_id] = setting
        return setting

    def submit(self, setting_id: str, value: str | bytes | None, strict: bool = False) -> RestResourceSetting:
        """
        Validate a raw value for a setting; a clean result is held as the
        pending value and its route is marked for preview.
        """
        setting = self.get_setting(setting_id)
        setting.sanitize(value, strict=strict)
        if setting.pending.is_valid:
            setting.preview()
        return setting

    def close(self) -> None:
        self.registry.reset()
        self.settings.clear()


class PreviewSessionStore:
    """In-memory preview sessions for this process, oldest evicted first."""

    def __init__(self, server: RestServer, max_sessions: int = 1000):
        self.server = server
        self.max_sessions = max_sessions
        self._sessions: dict[str, PreviewSession] = {}

    def create(self) -> PreviewSession:
        session = PreviewSession(self.server)
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            oldest_id = next(iter(self._sessions))
            self.end(oldest_id)
            logger.info("evicted preview session %s", oldest_id)
        logger.info("started preview session %s", session.id)
        return session

    def get(self, session_id: str) -> PreviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def end(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        session.close()
        logger.info("ended preview session %s", session_id)

    def __len__(self) -> int:
        return len(self._sessions)
