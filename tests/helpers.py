import json
from datetime import datetime

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.route_identity import setting_id_for
from app.models.widget import Widget

BASE_URL = "http://testserver/api/"
PREVIEW_HEADER = settings.PREVIEW_SESSION_HEADER


def create_widget(
    db: Session,
    *,
    title: str = "Widget",
    description: str | None = None,
    status: str = "draft",
    quantity: int = 0,
) -> Widget:
    w = Widget(
        title=title,
        description=description,
        status=status,
        quantity=quantity,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )
    db.add(w)
    db.commit()
    db.refresh(w)
    return w


def start_preview(client: TestClient) -> str:
    r = client.post("/preview/sessions")
    assert r.status_code == 201
    return r.json()["id"]


def submit_edit(client: TestClient, session_id: str, route: str, value, strict: bool = True):
    return client.post(
        f"/preview/sessions/{session_id}/settings",
        json={
            "setting_id": setting_id_for(route),
            "value": value if isinstance(value, str) else json.dumps(value),
            "strict": strict,
        },
    )


def resource(route: str, **body) -> dict:
    return {"_links": {"self": [{"href": BASE_URL + route}]}, **body}
