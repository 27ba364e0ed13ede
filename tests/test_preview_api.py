from fastapi.testclient import TestClient

from app.main import app
from tests.helpers import PREVIEW_HEADER, create_widget, start_preview, submit_edit


def test_preview_flow_overlays_item_and_collection(db_session):
    w = create_widget(db_session, title="Old")
    other = create_widget(db_session, title="Untouched")
    client = TestClient(app)
    sid = start_preview(client)

    r = submit_edit(client, sid, f"widgets/{w.id}", {"title": "  Hi  "})
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["previewed"] is True
    assert body["route"] == f"widgets/{w.id}"
    assert body["value"] == {"title": "Hi"}
    assert body["errors"] == []

    r = client.get(f"/api/widgets/{w.id}", headers={PREVIEW_HEADER: sid})
    assert r.status_code == 200
    assert r.json() == {"title": "Hi"}
    assert r.headers[PREVIEW_HEADER] == sid

    r = client.get("/api/widgets", headers={PREVIEW_HEADER: sid})
    items = r.json()
    assert items[0] == {"title": "Hi"}
    assert items[1]["title"] == "Untouched"
    assert items[1]["id"] == other.id

    # without the header the stored value is served
    r = client.get(f"/api/widgets/{w.id}")
    assert r.json()["title"] == "Old"

    db_session.refresh(w)
    assert w.title == "Old"


def test_invalid_edit_is_reported_and_not_previewed(db_session):
    w = create_widget(db_session, title="Old")
    client = TestClient(app)
    sid = start_preview(client)

    r = submit_edit(client, sid, f"widgets/{w.id}", {"title": ""})
    body = r.json()
    assert body["valid"] is False
    assert body["previewed"] is False
    assert body["value"] is None
    assert [e["code"] for e in body["errors"]] == ["empty_title"]
    assert body["errors"][0]["field"] == "title"

    r = client.get(f"/api/widgets/{w.id}", headers={PREVIEW_HEADER: sid})
    assert r.json()["title"] == "Old"


def test_non_strict_submit_skips_validators(db_session):
    client = TestClient(app)
    sid = start_preview(client)
    r = submit_edit(client, sid, "widgets/5", {"title": ""}, strict=False)
    assert r.json()["valid"] is True


def test_validate_all_forces_strict_and_reports_each(db_session):
    a = create_widget(db_session, title="A")
    b = create_widget(db_session, title="B")
    client = TestClient(app)
    sid = start_preview(client)

    r = client.post(
        f"/preview/sessions/{sid}/validate",
        json={
            "settings": {
                f"rest_resource[widgets/{a.id}]": '{"title": "A2"}',
                f"rest_resource[widgets/{b.id}]": {"title": "", "quantity": -1},
            }
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is False
    first, second = body["results"]
    assert first["valid"] is True
    assert [e["code"] for e in second["errors"]] == ["empty_title", "quantity_too_small"]

    r = client.get(f"/preview/sessions/{sid}")
    detail = r.json()
    assert detail["previewed_routes"] == [f"widgets/{a.id}"]
    assert {s["setting_id"] for s in detail["settings"]} == {
        f"rest_resource[widgets/{a.id}]",
        f"rest_resource[widgets/{b.id}]",
    }


def test_non_object_payload_flagged(db_session):
    client = TestClient(app)
    sid = start_preview(client)
    r = submit_edit(client, sid, "widgets/5", "[1, 2, 3]")
    assert r.json()["valid"] is False
    assert r.json()["errors"][0]["code"] == "invalid_payload"


def test_bad_identifier_and_unknown_route(db_session):
    client = TestClient(app)
    sid = start_preview(client)

    r = client.post(
        f"/preview/sessions/{sid}/settings",
        json={"setting_id": "widgets/5", "value": "{}"},
    )
    assert r.status_code == 400

    r = submit_edit(client, sid, "gadgets/5", {"title": "x"})
    assert r.status_code == 404
    assert r.json()["code"] == "rest_no_route"


def test_unknown_session(db_session):
    client = TestClient(app)
    r = client.get("/api/widgets", headers={PREVIEW_HEADER: "nope"})
    assert r.status_code == 404
    r = client.post("/preview/sessions/nope/settings", json={"setting_id": "rest_resource[widgets/1]", "value": "{}"})
    assert r.status_code == 404


def test_ending_session_stops_overlay(db_session):
    w = create_widget(db_session, title="Old")
    client = TestClient(app)
    sid = start_preview(client)
    submit_edit(client, sid, f"widgets/{w.id}", {"title": "Hi"})

    r = client.delete(f"/preview/sessions/{sid}")
    assert r.status_code == 204

    r = client.get(f"/api/widgets/{w.id}", headers={PREVIEW_HEADER: sid})
    assert r.status_code == 404
    r = client.get(f"/api/widgets/{w.id}")
    assert r.json()["title"] == "Old"


def test_overlay_middleware_installed_once():
    before = len(app.user_middleware)
    from app.core.preview_middleware import attach_preview_overlay

    attach_preview_overlay(app)
    assert len(app.user_middleware) == before


def test_non_finite_values_never_reach_reads(db_session):
    w = create_widget(db_session, title="Old")
    client = TestClient(app)
    sid = start_preview(client)

    r = submit_edit(client, sid, f"widgets/{w.id}", '{"title": "Hi", "extra": NaN}')
    assert r.status_code == 200
    assert r.json()["valid"] is False
    assert r.json()["errors"][0]["code"] == "invalid_payload"

    r = submit_edit(client, sid, f"widgets/{w.id}", {"quantity": "Infinity"}, strict=False)
    assert r.json()["valid"] is False
    assert r.json()["errors"][0] == {
        "field": "quantity",
        "code": "rest_invalid_param",
        "message": "Invalid parameter: quantity",
        "data": {"field": "quantity"},
    }

    r = client.get(f"/api/widgets/{w.id}", headers={PREVIEW_HEADER: sid})
    assert r.status_code == 200
    assert r.json()["title"] == "Old"

    r = client.get("/api/widgets", headers={PREVIEW_HEADER: sid})
    assert r.status_code == 200
    assert r.json()[0]["title"] == "Old"


def test_error_order_follows_schema_not_payload(db_session):
    w = create_widget(db_session, title="Old")
    client = TestClient(app)
    sid = start_preview(client)
    r = submit_edit(client, sid, f"widgets/{w.id}", '{"quantity": -1, "status": "bogus", "title": ""}')
    assert [e["code"] for e in r.json()["errors"]] == ["empty_title", "invalid_status", "quantity_too_small"]
