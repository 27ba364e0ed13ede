import json

import pytest

from app.core.errors import MalformedIdentifier, SessionNotFound
from app.core.field_schema import field
from app.core.preview_registry import PreviewSession, PreviewSessionStore
from app.core.rest_server import RestResponse, RestServer


@pytest.fixture()
def server():
    s = RestServer()
    s.register_route(
        r"widgets/(?P<id>\d+)",
        ["PUT"],
        lambda request, **ctx: RestResponse(),
        args=[field("title", "text", required=True)],
    )
    return s


@pytest.fixture()
def session(server):
    return PreviewSession(server)


def test_valid_submit_is_previewed(session):
    setting = session.submit("rest_resource[widgets/5]", '{"title": " Hi "}', strict=True)
    assert setting.is_previewed
    assert json.loads(setting.value()) == {"title": "Hi"}
    pending = session.registry.lookup("/widgets/5/")
    assert pending is setting.pending
    assert pending.raw_value == '{"title": " Hi "}'


def test_invalid_submit_is_not_registered(session):
    setting = session.submit("rest_resource[widgets/5]", '{"title": ""}', strict=True)
    assert not setting.is_previewed
    assert setting.post_value() is None
    assert setting.pending.errors.codes == ["empty_title"]
    assert session.registry.lookup("widgets/5") is None


def test_later_failure_keeps_entry_but_drops_value(session):
    session.submit("rest_resource[widgets/5]", '{"title": "Hi"}', strict=True)
    session.submit("rest_resource[widgets/5]", '{"title": ""}', strict=True)
    pending = session.registry.lookup("widgets/5")
    assert pending is not None
    assert not pending.is_valid
    assert pending.canonical_value is None


def test_remarking_replaces_record(session):
    a = session.get_setting("rest_resource[widgets/5]")
    a.sanitize('{"title": "A"}')
    a.preview()
    a.preview()
    assert len(session.registry) == 1

    b = session.get_setting("rest_resource[/widgets/5/]")
    b.sanitize('{"title": "B"}')
    b.preview()
    assert len(session.registry) == 1
    assert json.loads(session.registry.lookup("widgets/5").canonical_value) == {"title": "B"}


def test_validating_all_escalates_and_always_resets(session):
    setting = session.get_setting("rest_resource[widgets/5]")
    with pytest.raises(RuntimeError):
        with session.validating_all():
            assert session.is_validating_all
            setting.sanitize('{"title": ""}')
            raise RuntimeError("boom")
    assert not session.is_validating_all
    assert setting.pending.errors.codes == ["empty_title"]

    setting.sanitize('{"title": ""}')
    assert not setting.pending.errors


def test_malformed_setting_id(session):
    with pytest.raises(MalformedIdentifier):
        session.submit("widgets/5", '{"title": "x"}')
    assert session.settings == {}


def test_sessions_are_isolated(server):
    store = PreviewSessionStore(server)
    one = store.create()
    two = store.create()
    one.submit("rest_resource[widgets/5]", '{"title": "Hi"}')
    assert "widgets/5" in one.registry
    assert "widgets/5" not in two.registry


def test_end_session_resets_registry(server):
    store = PreviewSessionStore(server)
    s = store.create()
    s.submit("rest_resource[widgets/5]", '{"title": "Hi"}')
    store.end(s.id)
    assert len(s.registry) == 0
    with pytest.raises(SessionNotFound):
        store.get(s.id)
    with pytest.raises(SessionNotFound):
        store.end(s.id)


def test_store_evicts_oldest(server):
    store = PreviewSessionStore(server, max_sessions=2)
    first = store.create()
    store.create()
    store.create()
    assert len(store) == 2
    with pytest.raises(SessionNotFound):
        store.get(first.id)
