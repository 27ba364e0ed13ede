import json
from typing import Any

from fastapi import APIRouter, Depends, Response, status

from app.core.preview_middleware import get_preview_sessions
from app.core.preview_registry import PreviewSession, PreviewSessionStore, RestResourceSetting
from app.schemas.preview import (
    PendingEditOut,
    PreviewSessionDetailOut,
    PreviewSessionOut,
    SettingResult,
    SettingSubmit,
    SettingsValidateRequest,
    SettingsValidateResponse,
)

router = APIRouter(prefix="/preview", tags=["preview"])


def _raw(value: Any) -> str:
    # clients may send the JSON string itself or the object it encodes
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _raw_text(raw: str | bytes | None) -> str | None:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _decoded(setting: RestResourceSetting) -> Any:
    v = setting.post_value()
    return json.loads(v) if v is not None else None


def _session_out(session: PreviewSession) -> PreviewSessionOut:
    return PreviewSessionOut(
        id=session.id,
        created_at=session.created_at,
        previewed_routes=session.registry.routes(),
    )


def _result_out(setting: RestResourceSetting) -> SettingResult:
    return SettingResult(
        setting_id=setting.id,
        route=str(setting.route),
        valid=setting.pending.is_valid,
        previewed=setting.is_previewed,
        errors=setting.pending.errors.as_list(),
        value=_decoded(setting),
    )


@router.post("/sessions", response_model=PreviewSessionOut, status_code=status.HTTP_201_CREATED)
def create_session(sessions: PreviewSessionStore = Depends(get_preview_sessions)):
    return _session_out(sessions.create())


@router.get("/sessions/{session_id}", response_model=PreviewSessionDetailOut)
def get_session(session_id: str, sessions: PreviewSessionStore = Depends(get_preview_sessions)):
    session = sessions.get(session_id)
    return PreviewSessionDetailOut(
        **_session_out(session).model_dump(),
        settings=[
            PendingEditOut(
                setting_id=s.id,
                route=str(s.route),
                previewed=s.is_previewed,
                raw_value=_raw_text(s.pending.raw_value),
                value=_decoded(s),
                errors=s.pending.errors.as_list(),
            )
            for s in session.settings.values()
        ],
    )


@router.post("/sessions/{session_id}/settings", response_model=SettingResult)
def submit_setting(
    session_id: str,
    payload: SettingSubmit,
    sessions: PreviewSessionStore = Depends(get_preview_sessions),
):
    """
    Validate a pending edit for one resource. A valid edit is previewed on
    later API reads that carry this session's header.
    """
    session = sessions.get(session_id)
    setting = session.submit(payload.setting_id, _raw(payload.value), strict=payload.strict)
    return _result_out(setting)


@router.post("/sessions/{session_id}/validate", response_model=SettingsValidateResponse)
def validate_settings(
    session_id: str,
    payload: SettingsValidateRequest,
    sessions: PreviewSessionStore = Depends(get_preview_sessions),
):
    """
    Validate several settings at once; validators always run in this mode.
    """
    session = sessions.get(session_id)
    results = []
    with session.validating_all():
        for setting_id, value in payload.settings.items():
            results.append(_result_out(session.submit(setting_id, _raw(value))))
    return SettingsValidateResponse(valid=all(r.valid for r in results), results=results)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def end_session(session_id: str, sessions: PreviewSessionStore = Depends(get_preview_sessions)):
    sessions.end(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
