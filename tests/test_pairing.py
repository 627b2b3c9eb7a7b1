from __future__ import annotations

import json
import string
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import qrcode

from ennote.db import init_db
from ennote.exceptions import StackTransportError
from ennote.models import Stack
from ennote.services.pairing import (
    RemoteStackSource,
    StackRepository,
    _qr_for,
    build_deep_link,
    parse_deep_link,
    parse_notes_text,
    render_qr_svg,
    render_qr_text,
)

T = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "test.db"
    init_db(path)
    return StackRepository(db_path=path)


# --- Stack record ---


def test_generated_ids_are_12_alphanumerics():
    ids = {Stack.generate_id() for _ in range(50)}
    assert len(ids) == 50
    allowed = set(string.ascii_letters + string.digits)
    for stack_id in ids:
        assert len(stack_id) == 12
        assert set(stack_id) <= allowed


def test_expiry_is_five_minutes_after_creation():
    stack = Stack(notes=["x", "y"], created_at=T)

    assert stack.expires_at == T + timedelta(seconds=300)
    assert stack.fetched is False
    assert not stack.is_expired(T + timedelta(seconds=300))
    assert stack.is_expired(T + timedelta(seconds=301))


def test_time_remaining_never_negative():
    stack = Stack(notes=["x"], created_at=T)
    assert stack.time_remaining(T + timedelta(seconds=60)) == 240
    assert stack.time_remaining(T + timedelta(hours=1)) == 0


def test_wire_format():
    stack = Stack(id="abcDEF123456", notes=["x"], created_at=T, fetched=True)
    wire = stack.to_wire()

    assert wire == {
        "id": "abcDEF123456",
        "notes": ["x"],
        "createdAt": "2026-10-19T12:00:00+00:00",
        "expiresAt": "2026-10-19T12:05:00+00:00",
        "fetched": 1,
    }
    assert Stack.from_wire({**wire, "fetched": 0}).fetched is False


# --- deep links ---


def test_build_and_parse_deep_link():
    assert build_deep_link("abcDEF123456") == "ennote://stack/abcDEF123456"
    assert parse_deep_link("ennote://stack/abcDEF123456") == "abcDEF123456"
    assert parse_deep_link("  ennote://stack/abcDEF123456/extra ") == "abcDEF123456"


@pytest.mark.parametrize(
    "uri",
    [
        "https://stack/abcDEF123456",
        "ennote://note/abcDEF123456",
        "ennote://stack",
        "ennote://stack/",
        "ennote:stack/abcDEF123456",
        "abcDEF123456",
        "",
    ],
)
def test_malformed_deep_links_are_rejected(uri):
    assert parse_deep_link(uri) is None


def test_non_string_deep_link_is_rejected():
    assert parse_deep_link(None) is None


def test_parse_notes_text():
    assert parse_notes_text("  one \n\n two\n   \nthree") == ["one", "two", "three"]
    assert parse_notes_text("   ") == []


# --- QR ---


def test_qr_payload_is_the_deep_link_at_medium_correction():
    qr = _qr_for("abcDEF123456")

    assert qr.error_correction == qrcode.constants.ERROR_CORRECT_M
    assert b"".join(chunk.data for chunk in qr.data_list) == build_deep_link("abcDEF123456").encode()


def test_qr_svg_is_svg():
    svg = render_qr_svg("abcDEF123456")
    assert svg.lstrip().startswith("<")
    assert "svg" in svg


def test_qr_text_is_not_empty():
    assert render_qr_text("abcDEF123456").strip()


# --- repository ---


def test_create_and_get(repo):
    created = repo.create(["a", "b"], now=T)
    fetched = repo.get(created.id)

    assert fetched.notes == ["a", "b"]
    assert fetched.created_at == T
    assert fetched.expires_at == T + timedelta(minutes=5)
    assert fetched.fetched is False


def test_get_unknown(repo):
    assert repo.get("nope") is None


def test_expired_stack_is_still_returned(repo):
    created = repo.create(["x", "y"], now=T)
    fetched = repo.get(created.id)

    assert fetched is not None
    assert fetched.is_expired(T + timedelta(seconds=301))


def test_claim_only_once(repo):
    created = repo.create(["a"], now=T)

    assert repo.claim(created.id) is True
    assert repo.claim(created.id) is False
    assert repo.get(created.id).fetched is True
    assert repo.claim("nope") is False


def test_release_reopens_claim(repo):
    created = repo.create(["a"], now=T)
    repo.claim(created.id)

    assert repo.release(created.id) is True
    assert repo.get(created.id).fetched is False
    assert repo.release(created.id) is False
    assert repo.claim(created.id) is True


# --- remote source ---


def _wire(stack_id="abcDEF123456", fetched=0):
    return {
        "id": stack_id,
        "notes": ["a", "b"],
        "createdAt": T.isoformat(),
        "expiresAt": (T + timedelta(minutes=5)).isoformat(),
        "fetched": fetched,
    }


def _source(handler) -> RemoteStackSource:
    return RemoteStackSource("http://test:8000/", transport=httpx.MockTransport(handler))


def test_remote_source_strips_trailing_slash():
    assert _source(lambda request: httpx.Response(200)).base_url == "http://test:8000"


@pytest.mark.asyncio
async def test_remote_fetch():
    def handler(request):
        assert request.url.path == "/api/stacks/abcDEF123456"
        return httpx.Response(200, json=_wire())

    stack = await _source(handler).fetch_stack("abcDEF123456")

    assert stack.id == "abcDEF123456"
    assert stack.notes == ["a", "b"]
    assert stack.expires_at == T + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_remote_fetch_not_found_is_none():
    stack = await _source(lambda request: httpx.Response(404, json={})).fetch_stack("nope")
    assert stack is None


@pytest.mark.asyncio
async def test_remote_fetch_server_error():
    with pytest.raises(StackTransportError):
        await _source(lambda request: httpx.Response(500)).fetch_stack("abcDEF123456")


@pytest.mark.asyncio
async def test_remote_fetch_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StackTransportError):
        await _source(handler).fetch_stack("abcDEF123456")


@pytest.mark.asyncio
async def test_remote_fetch_malformed_record():
    with pytest.raises(StackTransportError):
        await _source(lambda request: httpx.Response(200, json={"id": "x"})).fetch_stack("x")


@pytest.mark.asyncio
async def test_remote_mark_fetched():
    responses = iter([httpx.Response(200, json={"claimed": True}), httpx.Response(409, json={})])

    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/api/stacks/abcDEF123456/fetched"
        return next(responses)

    source = _source(handler)
    assert await source.mark_fetched("abcDEF123456") is True
    assert await source.mark_fetched("abcDEF123456") is False


@pytest.mark.asyncio
async def test_remote_release_claim():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.path == "/api/stacks/abcDEF123456/fetched"
        return httpx.Response(200, json={"released": True})

    assert await _source(handler).release_claim("abcDEF123456") is True


@pytest.mark.asyncio
async def test_remote_release_unknown_stack():
    assert await _source(lambda request: httpx.Response(404, json={})).release_claim("nope") is False


@pytest.mark.asyncio
async def test_remote_create_stack():
    def handler(request):
        assert json.loads(request.content) == {"notes": ["a", "b"]}
        return httpx.Response(201, json=_wire())

    stack = await _source(handler).create_stack(["a", "b"])
    assert stack.id == "abcDEF123456"
