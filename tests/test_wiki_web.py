from __future__ import annotations

import json
import socket
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import uvicorn

from plugin_wiki.entrypoints.wiki_web import create_wiki_app
from plugin_wiki.site_config import SiteConfig
from plugin_wiki.wiki_context import WikiContext

_PASSWORD = "s3cret"

_WikiServerTuple = tuple[uvicorn.Server, str, WikiContext]


def _start_wiki_server(ctx: WikiContext) -> tuple[uvicorn.Server, socket.socket, threading.Thread, str]:
    app = create_wiki_app(ctx=ctx)
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(128)
    host = str(sock.getsockname()[0])
    port = int(sock.getsockname()[1])
    base_url = f"http://{host}:{port}"

    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        access_log=False,
        log_level="error",
    )
    server = uvicorn.Server(config=config)

    thread = threading.Thread(
        target=server.run,
        kwargs={"sockets": [sock]},
        daemon=True,
    )
    thread.start()

    deadline = time.time() + 5
    while time.time() < deadline:
        try:
            urllib.request.urlopen(f"{base_url}/api/pages", timeout=0.25)
            break
        except Exception:
            time.sleep(0.05)

    return server, sock, thread, base_url


@pytest.fixture()
def wiki_server(tmp_path: Path) -> Generator[_WikiServerTuple, None, None]:
    ctx = WikiContext(config=SiteConfig(data_dir=tmp_path, admin_password=_PASSWORD))
    ctx.store.seed_initial_data()
    server, sock, thread, base_url = _start_wiki_server(ctx)

    yield server, base_url, ctx

    server.should_exit = True
    thread.join(timeout=5)
    sock.close()


def _get_json(url: str) -> Any:
    resp = urllib.request.urlopen(url)
    assert resp.status == 200
    return json.loads(resp.read().decode("utf-8"))


def _send(
    url: str,
    payload: object | None = None,
    *,
    method: str = "POST",
    password: str | None = _PASSWORD,
    raw: bytes | None = None,
) -> Any:
    data = raw if raw is not None else (json.dumps(payload).encode("utf-8") if payload is not None else None)
    headers = {"Content-Type": "application/json"}
    if password is not None:
        headers["X-Admin-Password"] = password
    req = urllib.request.Request(url, data=data, method=method, headers=headers)
    resp = urllib.request.urlopen(req)
    return json.loads(resp.read().decode("utf-8"))


def _expect_error(status: int, url: str, payload: object | None = None, **kwargs: Any) -> dict[str, Any]:
    try:
        _send(url, payload, **kwargs)
        pytest.fail(f"Expected HTTP {status}")
    except urllib.error.HTTPError as exc:
        assert exc.code == status
        body: dict[str, Any] = json.loads(exc.read().decode("utf-8"))
        return body


def test_static_pages_are_served(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    for path, title in (("/", "Plugin Wiki"), ("/wiki", "Wiki")):
        resp = urllib.request.urlopen(f"{base_url}{path}")
        assert resp.status == 200
        body = resp.read().decode("utf-8")
        assert "<html" in body
        assert title in body


def test_site_summary_groups_navigation(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    site = _get_json(f"{base_url}/api/site")

    assert site["stats"] == {"pages": 7, "categories": 3}
    assert site["copy_reset_ms"] == 2000
    assert [group["category"] for group in site["navigation"]] == ["Introduction", "Setup", "Advanced"]
    assert [page["id"] for page in site["navigation"][0]["pages"]] == ["getting-started", "installation"]
    assert site["announcement"]["id"] == "main"


def test_list_pages(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    pages = _get_json(f"{base_url}/api/pages")
    assert [page["order"] for page in pages] == list(range(7))
    assert set(pages[0]) == {"id", "title", "category", "order", "updated_at"}


def test_get_page_renders_html_and_tree(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    page = _get_json(f"{base_url}/api/pages/getting-started")

    assert page["title"] == "Getting Started"
    assert page["content"].startswith("# Getting Started with Manager")
    assert page["html"].startswith("<h1>Getting Started with Manager</h1>\n")
    assert page["tree"][0] == {"type": "heading", "level": 1, "text": "Getting Started with Manager"}
    dropdown = page["tree"][-1]
    assert dropdown["type"] == "dropdown"
    assert dropdown["expanded"] is False


def test_get_page_applies_view_state(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    collapsed = _get_json(f"{base_url}/api/pages/installation")
    dropdown_id = collapsed["tree"][-1]["dropdown_id"]
    code = next(block for block in collapsed["tree"] if block["type"] == "code")

    page = _get_json(f"{base_url}/api/pages/installation?expanded={dropdown_id}&copied={code['fragment_id']}")

    assert page["tree"][-1]["expanded"] is True
    copied = next(block for block in page["tree"] if block["type"] == "code")
    assert copied["copied"] is True
    assert f'data-dropdown-id="{dropdown_id}" open>' in page["html"]
    assert ">Copied</button>" in page["html"]


def test_unknown_page_is_404(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    try:
        urllib.request.urlopen(f"{base_url}/api/pages/ghost")
        pytest.fail("Expected HTTP 404")
    except urllib.error.HTTPError as exc:
        assert exc.code == 404
        body = json.loads(exc.read().decode("utf-8"))
        assert body["error"] == "Page ghost not found"


def test_preview_renders_without_auth(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    result = _send(
        f"{base_url}/api/preview",
        {"content": "{{<Tip>\nUse ``ls``\n}}", "expanded": ["dropdown-0"], "copied": "dropdown-0/inline-0-1"},
        password=None,
    )

    assert result["tree"][0]["expanded"] is True
    inline = result["tree"][0]["children"][0]["spans"][1]
    assert inline == {"type": "inline_code", "text": "ls", "fragment_id": "dropdown-0/inline-0-1", "copied": True}
    assert result["html"].startswith('<details class="dropdown" data-dropdown-id="dropdown-0" open>')


def test_preview_rejects_bad_payloads(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    assert _expect_error(400, f"{base_url}/api/preview", raw=b"{oops")["error"] == "Invalid JSON"
    assert _expect_error(400, f"{base_url}/api/preview", [1, 2])["error"] == "Expected JSON object"
    assert _expect_error(400, f"{base_url}/api/preview", {"content": 3})["error"] == "content must be a string"


def test_login(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    assert _send(f"{base_url}/api/login", {"password": _PASSWORD}, password=None) == {"ok": True}
    body = _expect_error(401, f"{base_url}/api/login", {"password": "wrong"}, password=None)
    assert body["error"] == "Incorrect password"


def test_admin_routes_require_password(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, ctx = wiki_server
    body = _expect_error(401, f"{base_url}/api/pages", {"id": "new", "title": "New"}, password=None)
    assert body["error"] == "Admin password required"
    _expect_error(401, f"{base_url}/api/pages/api", method="DELETE", password="wrong")
    assert ctx.store.get_page("new") is None
    assert ctx.store.get_page("api") is not None


def test_page_crud_round_trip(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, ctx = wiki_server

    created = _send(f"{base_url}/api/pages", {"id": "faq", "title": "FAQ", "content": "# FAQ", "order": 7})
    assert created == {"ok": True}
    assert _get_json(f"{base_url}/api/pages/faq")["html"] == "<h1>FAQ</h1>\n"

    duplicate = _expect_error(400, f"{base_url}/api/pages", {"id": "faq", "title": "FAQ"})
    assert "already exists" in duplicate["error"]

    assert _send(f"{base_url}/api/pages/faq", {"content": "**new**"}, method="PUT") == {"ok": True}
    assert _get_json(f"{base_url}/api/pages/faq")["html"] == "<p><strong>new</strong></p>\n"

    bad_field = _expect_error(400, f"{base_url}/api/pages/faq", {"id": "other"}, method="PUT")
    assert "Unknown page fields" in bad_field["error"]

    assert _send(f"{base_url}/api/pages/faq", method="DELETE") == {"ok": True}
    assert ctx.store.get_page("faq") is None
    _expect_error(400, f"{base_url}/api/pages/faq", method="DELETE")


def test_create_page_validates_payload(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    body = _expect_error(400, f"{base_url}/api/pages", {"id": "Bad Id", "title": "x"})
    assert "id" in body["error"]


def test_reorder_pages(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    assert _send(f"{base_url}/api/pages/reorder", {"page_ids": ["api", "features"]}) == {"ok": True}

    ids = [page["id"] for page in _get_json(f"{base_url}/api/pages")]
    assert ids[:3] == ["api", "features", "getting-started"]

    body = _expect_error(400, f"{base_url}/api/pages/reorder", {"page_ids": ["ghost"]})
    assert "Unknown pages: ghost" in body["error"]
    body = _expect_error(400, f"{base_url}/api/pages/reorder", {"page_ids": "api"})
    assert body["error"] == "page_ids must be a list of strings"


def test_category_routes(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    assert _send(f"{base_url}/api/categories", {"id": "extras", "name": "Extras", "order": 3}) == {"ok": True}
    assert _send(f"{base_url}/api/categories/extras", {"name": "Bonus"}, method="PUT") == {"ok": True}

    names = [category["name"] for category in _get_json(f"{base_url}/api/categories")]
    assert names == ["Introduction", "Setup", "Advanced", "Bonus"]

    assert _send(f"{base_url}/api/categories/extras", method="DELETE") == {"ok": True}
    assert len(_get_json(f"{base_url}/api/categories")) == 3


def test_announcement_routes(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    current = _get_json(f"{base_url}/api/announcement")["announcement"]
    assert current["icon"] == "info"

    updated = {"id": "main", "text": "Maintenance tonight", "icon": "warning", "background_color": "#f59e0b"}
    assert _send(f"{base_url}/api/announcement", updated, method="PUT") == {"ok": True}
    announcement = _get_json(f"{base_url}/api/announcement")["announcement"]
    assert announcement["text"] == "Maintenance tonight"
    assert announcement["created_at"] == current["created_at"]

    invalid = {"id": "main", "text": "x", "background_color": "orange"}
    _expect_error(400, f"{base_url}/api/announcement", invalid, method="PUT")

    hidden = {"id": "main", "text": "off", "enabled": False}
    assert _send(f"{base_url}/api/announcement", hidden, method="PUT") == {"ok": True}
    assert _get_json(f"{base_url}/api/announcement") == {"announcement": None}


def test_copy_marks_fragment_until_reset(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, ctx = wiki_server
    page = _get_json(f"{base_url}/api/pages/installation")
    code = next(block for block in page["tree"] if block["type"] == "code")
    assert code["copied"] is False

    copied = _send(
        f"{base_url}/api/pages/installation/copy",
        {"fragment_id": code["fragment_id"]},
        password=None,
    )

    marked = next(block for block in copied["tree"] if block["type"] == "code")
    assert marked["copied"] is True
    assert ">Copied</button>" in copied["html"]
    assert ctx.copy_state_for("installation").copied_id == code["fragment_id"]

    ctx.copy_state_for("installation").reset()
    again = _get_json(f"{base_url}/api/pages/installation")
    assert next(block for block in again["tree"] if block["type"] == "code")["copied"] is False


def test_copy_keeps_expanded_dropdowns(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    page = _get_json(f"{base_url}/api/pages/installation")
    dropdown_id = page["tree"][-1]["dropdown_id"]
    code = next(block for block in page["tree"] if block["type"] == "code")

    copied = _send(
        f"{base_url}/api/pages/installation/copy",
        {"fragment_id": code["fragment_id"], "expanded": [dropdown_id]},
        password=None,
    )

    assert copied["tree"][-1]["expanded"] is True


def test_copy_rejects_unknown_targets(wiki_server: _WikiServerTuple) -> None:
    _server, base_url, _ctx = wiki_server
    body = _expect_error(400, f"{base_url}/api/pages/installation/copy", {"fragment_id": "code-99"}, password=None)
    assert body["error"] == "Unknown fragment: code-99"
    body = _expect_error(400, f"{base_url}/api/pages/installation/copy", {"fragment_id": ""}, password=None)
    assert body["error"] == "fragment_id must be a non-empty string"
    body = _expect_error(404, f"{base_url}/api/pages/ghost/copy", {"fragment_id": "code-0"}, password=None)
    assert body["error"] == "Page ghost not found"


def test_no_shutdown_route(wiki_server: _WikiServerTuple) -> None:
    server, base_url, _ctx = wiki_server
    try:
        _send(f"{base_url}/api/done", password=None)
        pytest.fail("Expected HTTP 404")
    except urllib.error.HTTPError as exc:
        assert exc.code == 404
    assert server.should_exit is False
