from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import SessionNotFound
from app.core.preview_registry import PreviewSessionStore
from app.core.response_overlay import ResponseOverlayFilter
from app.core.urls import rest_url

logger = logging.getLogger(__name__)


def get_preview_sessions(request: Request) -> PreviewSessionStore:
    return request.app.state.preview_sessions


def attach_preview_overlay(app: FastAPI) -> None:
    """
    Install the response overlay on API reads that carry a preview session
    header. Safe to call more than once; the middleware is added once.
    """
    if getattr(app.state, "preview_overlay_installed", False):
        return
    app.state.preview_overlay_installed = True

    header = settings.PREVIEW_SESSION_HEADER
    prefix = settings.api_prefix + "/"

    @app.middleware("http")
    async def _preview_overlay(request: Request, call_next):
        session_id = request.headers.get(header)
        if not session_id or not request.url.path.startswith(prefix):
            return await call_next(request)

        try:
            session = get_preview_sessions(request).get(session_id)
        except SessionNotFound as e:
            return JSONResponse(status_code=404, content={"detail": str(e)})

        response = await call_next(request)
        if not response.headers.get("content-type", "").startswith("application/json"):
            return response

        raw = b"".join([chunk async for chunk in response.body_iterator])
        data = json.loads(raw) if raw else None
        if response.status_code < 400 and session.registry:
            overlay = ResponseOverlayFilter(session.registry, rest_url(request))
            data = overlay(data)
            logger.debug("applied preview session %s to %s", session.id, request.url.path)

        headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
        headers[header] = session.id
        return JSONResponse(content=data, status_code=response.status_code, headers=headers)
