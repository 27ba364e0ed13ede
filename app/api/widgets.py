import json
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.field_schema import field
from app.core.rest_server import RestRequest, RestResponse, rest_server
from app.core.urls import rest_url
from app.db.session import get_db
from app.models.widget import Widget
from app.schemas.pagination import PaginatedResponse, PaginationMeta
from app.schemas.widget import Link, WidgetOut

router = APIRouter(prefix=f"{settings.api_prefix}/widgets", tags=["widgets"])

WIDGET_STATUSES = ["draft", "published", "archived"]

WIDGET_FIELDS = [
    field("id", "number", readonly=True),
    field("title", "text", required=True, rules={"max_length": 200}),
    field("description", "text", rules={"max_length": 2000}),
    field("status", "select", rules={"choices": WIDGET_STATUSES}),
    field("quantity", "number", rules={"min": 0, "integer": True}),
]

_SETTABLE = [f.name for f in WIDGET_FIELDS if not f.readonly]


def widget_to_out(http_request: Request, w: Widget) -> dict:
    return WidgetOut(
        id=w.id,
        title=w.title,
        description=w.description,
        status=w.status,
        quantity=w.quantity,
        created_at=w.created_at,
        updated_at=w.updated_at,
        links={
            "self": [Link(href=rest_url(http_request, f"widgets/{w.id}"))],
            "collection": [Link(href=rest_url(http_request, "widgets"))],
        },
    ).model_dump(mode="json", by_alias=True)


def _get_or_404(db: Session, widget_id) -> Widget:
    w = db.get(Widget, int(widget_id))
    if not w:
        raise HTTPException(status_code=404, detail="Widget not found")
    return w


# ---------- REST route handlers ----------

def handle_list(request: RestRequest, *, db: Session, http_request: Request) -> RestResponse:
    limit = request.query.get("limit", 100)
    offset = request.query.get("offset", 0)

    query = db.query(Widget)
    if request.query.get("status"):
        query = query.filter(Widget.status == request.query["status"])

    total = query.count()
    widgets = query.order_by(Widget.id.asc()).offset(offset).limit(limit).all()
    items = [widget_to_out(http_request, w) for w in widgets]

    if request.query.get("include_pagination"):
        page = PaginatedResponse[dict](
            items=items,
            pagination=PaginationMeta(
                total=total,
                limit=limit,
                offset=offset,
                has_more=(offset + len(items) < total),
            ),
        )
        return RestResponse(data=page.model_dump(mode="json"))
    return RestResponse(data=items)


def handle_create(request: RestRequest, *, db: Session, http_request: Request) -> RestResponse:
    w = Widget(
        title=request.params["title"],
        description=request.params.get("description"),
        status=request.params.get("status") or "draft",
        quantity=request.params.get("quantity") or 0,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )
    db.add(w)
    db.commit()
    db.refresh(w)
    return RestResponse(data=widget_to_out(http_request, w), status=201)


def handle_get(request: RestRequest, *, db: Session, http_request: Request) -> RestResponse:
    w = _get_or_404(db, request.url_params["id"])
    return RestResponse(data=widget_to_out(http_request, w))


def handle_update(request: RestRequest, *, db: Session, http_request: Request) -> RestResponse:
    w = _get_or_404(db, request.url_params["id"])
    for key in _SETTABLE:
        if request.params.get(key) is not None:
            setattr(w, key, request.params[key])
    w.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(w)
    return RestResponse(data=widget_to_out(http_request, w))


rest_server.register_route("widgets", ["GET"], handle_list)
rest_server.register_route("widgets", ["POST"], handle_create, args=WIDGET_FIELDS)
rest_server.register_route(r"widgets/(?P<id>\d+)", ["GET"], handle_get)
rest_server.register_route(r"widgets/(?P<id>\d+)", ["PUT", "PATCH"], handle_update, args=WIDGET_FIELDS)


def _respond(result: RestResponse) -> JSONResponse:
    return JSONResponse(status_code=result.status, content=result.data)


# ---------- HTTP endpoints ----------

@router.get("")
def list_widgets(
    request: Request,
    status_filter: str | None = Query(default=None, alias="status", description="Filter by status"),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    """
    List widgets. Use ?include_pagination=true to get pagination metadata.
    """
    rest_request = RestRequest(
        method="GET",
        route="widgets",
        query={"status": status_filter, "limit": limit, "offset": offset, "include_pagination": include_pagination},
    )
    return _respond(rest_server.dispatch(rest_request, db=db, http_request=request))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_widget(
    request: Request,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    rest_request = RestRequest(method="POST", route="widgets", body=json.dumps(payload))
    return _respond(rest_server.dispatch(rest_request, db=db, http_request=request))


@router.get("/{widget_id}")
def get_widget(widget_id: int, request: Request, db: Session = Depends(get_db)):
    rest_request = RestRequest(method="GET", route=f"widgets/{widget_id}")
    return _respond(rest_server.dispatch(rest_request, db=db, http_request=request))


@router.put("/{widget_id}")
def update_widget(
    widget_id: int,
    request: Request,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    rest_request = RestRequest(method="PUT", route=f"widgets/{widget_id}", body=json.dumps(payload))
    return _respond(rest_server.dispatch(rest_request, db=db, http_request=request))
