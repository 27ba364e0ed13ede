from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.health import router as health_router
from app.api.root import router as root_router
from app.api.preview import router as preview_router
from app.api.widgets import router as widgets_router
from app.core.config import settings
from app.core.errors import MalformedIdentifier, RouteNotFound, SessionNotFound
from app.core.log import configure_logging
from app.core.preview_middleware import attach_preview_overlay
from app.core.preview_registry import PreviewSessionStore
from app.core.rest_server import rest_server

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title="REST Resource Preview")

app.state.preview_sessions = PreviewSessionStore(rest_server, max_sessions=settings.PREVIEW_MAX_SESSIONS)

attach_preview_overlay(app)

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MalformedIdentifier)
def malformed_identifier_handler(request: Request, exc: MalformedIdentifier):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RouteNotFound)
def route_not_found_handler(request: Request, exc: RouteNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc), "code": "rest_no_route"})


@app.exception_handler(SessionNotFound)
def session_not_found_handler(request: Request, exc: SessionNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


app.include_router(root_router)
app.include_router(health_router)
app.include_router(widgets_router)
app.include_router(preview_router)
