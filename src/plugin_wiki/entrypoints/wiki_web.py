from __future__ import annotations

import json
import socket
import sys
import webbrowser
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import typer
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from plugin_wiki.domain.render_tree import ViewState
from plugin_wiki.site_config import SiteConfig
from plugin_wiki.wiki_context import WikiContext

_STATIC_DIR = Path(__file__).parent.parent / "static"
_PASSWORD_HEADER = "x-admin-password"

Handler = Callable[[Request], Awaitable[Response]]


def _view_state_from(expanded: object, copied: object) -> ViewState:
    if isinstance(expanded, str):
        expanded_ids = [item for item in expanded.split(",") if item]
    elif isinstance(expanded, list):
        expanded_ids = [item for item in expanded if isinstance(item, str)]
    else:
        expanded_ids = []
    return ViewState(
        expanded=frozenset(expanded_ids),
        copied_id=copied if isinstance(copied, str) and copied else None,
    )


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _result(error: str | None) -> JSONResponse:
    if error:
        return _error(error)
    return JSONResponse({"ok": True})


class _WikiApi:
    def __init__(self, *, ctx: WikiContext) -> None:
        self.ctx = ctx

    async def _parse_json_object(self, request: Request) -> tuple[dict[str, Any] | None, Response | None]:
        raw = await request.body()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            return None, _error("Invalid JSON")
        if not isinstance(payload, dict):
            return None, _error("Expected JSON object")
        return payload, None

    def _serve_static(self, name: str) -> Response:
        try:
            html = (_STATIC_DIR / name).read_text(encoding="utf-8")
        except OSError as exc:
            return PlainTextResponse(f"Failed to load {name}: {exc}", status_code=500)
        return HTMLResponse(html)

    async def serve_landing(self, _request: Request) -> Response:
        return self._serve_static("index.html")

    async def serve_wiki(self, _request: Request) -> Response:
        return self._serve_static("wiki.html")

    async def serve_site(self, _request: Request) -> Response:
        with self.ctx.lock:
            data = self.ctx.get_site_json()
        return JSONResponse(data)

    async def serve_pages(self, _request: Request) -> Response:
        with self.ctx.lock:
            data = self.ctx.get_pages_json()
        return JSONResponse(data)

    async def serve_page(self, request: Request) -> Response:
        page_id = request.path_params["page_id"]
        view = _view_state_from(request.query_params.get("expanded"), request.query_params.get("copied"))
        try:
            with self.ctx.lock:
                data = self.ctx.get_page_json(page_id, view=view)
        except ValueError as exc:
            return _error(str(exc))
        if data is None:
            return _error(f"Page {page_id} not found", status_code=404)
        return JSONResponse(data)

    async def handle_copy(self, request: Request) -> Response:
        page_id = request.path_params["page_id"]
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        fragment_id = payload.get("fragment_id")
        if not isinstance(fragment_id, str) or not fragment_id:
            return _error("fragment_id must be a non-empty string")
        view = _view_state_from(payload.get("expanded"), None)
        try:
            with self.ctx.lock:
                if self.ctx.store.get_page(page_id) is None:
                    return _error(f"Page {page_id} not found", status_code=404)
                error = self.ctx.copy_fragment(page_id, fragment_id)
                data = None if error else self.ctx.get_page_json(page_id, view=view)
        except ValueError as exc:
            return _error(str(exc))
        if error:
            return _error(error)
        return JSONResponse(data)

    async def handle_preview(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        content = payload.get("content")
        if not isinstance(content, str):
            return _error("content must be a string")
        view = _view_state_from(payload.get("expanded"), payload.get("copied"))
        return JSONResponse(self.ctx.render_preview(content, view=view))

    async def serve_categories(self, _request: Request) -> Response:
        with self.ctx.lock:
            data = self.ctx.get_categories_json()
        return JSONResponse(data)

    async def serve_announcement(self, _request: Request) -> Response:
        with self.ctx.lock:
            data = self.ctx.get_announcement_json()
        return JSONResponse({"announcement": data})

    async def handle_login(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        password = payload.get("password")
        if not isinstance(password, str) or not self.ctx.check_password(password):
            return _error("Incorrect password", status_code=401)
        return JSONResponse({"ok": True})

    async def handle_create_page(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        with self.ctx.lock:
            error = self.ctx.create_page(payload)
        return _result(error)

    async def handle_update_page(self, request: Request) -> Response:
        page_id = request.path_params["page_id"]
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        with self.ctx.lock:
            error = self.ctx.update_page(page_id, payload)
        return _result(error)

    async def handle_delete_page(self, request: Request) -> Response:
        page_id = request.path_params["page_id"]
        with self.ctx.lock:
            error = self.ctx.delete_page(page_id)
        return _result(error)

    async def handle_reorder_pages(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        page_ids = payload.get("page_ids")
        if not isinstance(page_ids, list) or not all(isinstance(item, str) for item in page_ids):
            return _error("page_ids must be a list of strings")
        with self.ctx.lock:
            error = self.ctx.reorder_pages(page_ids)
        return _result(error)

    async def handle_create_category(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        with self.ctx.lock:
            error = self.ctx.create_category(payload)
        return _result(error)

    async def handle_update_category(self, request: Request) -> Response:
        category_id = request.path_params["category_id"]
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        with self.ctx.lock:
            error = self.ctx.update_category(category_id, payload)
        return _result(error)

    async def handle_delete_category(self, request: Request) -> Response:
        category_id = request.path_params["category_id"]
        with self.ctx.lock:
            error = self.ctx.delete_category(category_id)
        return _result(error)

    async def handle_set_announcement(self, request: Request) -> Response:
        payload, error_response = await self._parse_json_object(request)
        if error_response is not None:
            return error_response
        assert payload is not None

        with self.ctx.lock:
            error = self.ctx.set_announcement(payload)
        return _result(error)

    def admin(self, handler: Handler) -> Handler:
        async def guarded(request: Request) -> Response:
            if not self.ctx.check_password(request.headers.get(_PASSWORD_HEADER)):
                return _error("Admin password required", status_code=401)
            return await handler(request)

        return guarded


def create_wiki_app(*, ctx: WikiContext) -> Starlette:
    api = _WikiApi(ctx=ctx)

    routes = [
        Route("/", api.serve_landing, methods=["GET"]),
        Route("/wiki", api.serve_wiki, methods=["GET"]),
        Route("/api/site", api.serve_site, methods=["GET"]),
        Route("/api/pages", api.serve_pages, methods=["GET"]),
        Route("/api/pages", api.admin(api.handle_create_page), methods=["POST"]),
        Route("/api/pages/reorder", api.admin(api.handle_reorder_pages), methods=["POST"]),
        Route("/api/pages/{page_id:str}", api.serve_page, methods=["GET"]),
        Route("/api/pages/{page_id:str}", api.admin(api.handle_update_page), methods=["PUT"]),
        Route("/api/pages/{page_id:str}", api.admin(api.handle_delete_page), methods=["DELETE"]),
        Route("/api/pages/{page_id:str}/copy", api.handle_copy, methods=["POST"]),
        Route("/api/preview", api.handle_preview, methods=["POST"]),
        Route("/api/categories", api.serve_categories, methods=["GET"]),
        Route("/api/categories", api.admin(api.handle_create_category), methods=["POST"]),
        Route("/api/categories/{category_id:str}", api.admin(api.handle_update_category), methods=["PUT"]),
        Route("/api/categories/{category_id:str}", api.admin(api.handle_delete_category), methods=["DELETE"]),
        Route("/api/announcement", api.serve_announcement, methods=["GET"]),
        Route("/api/announcement", api.admin(api.handle_set_announcement), methods=["PUT"]),
        Route("/api/login", api.handle_login, methods=["POST"]),
    ]

    return Starlette(routes=routes)


def _run_uvicorn_server(server: uvicorn.Server, sock: socket.socket) -> None:
    server.run(sockets=[sock])


def run_wiki_server(*, config: SiteConfig, data_dir: Path | None = None, seed: bool = True) -> None:
    """Serve the landing page, wiki browser and admin API until interrupted."""
    ctx = WikiContext(config=config, data_dir=data_dir)
    if seed:
        seeded = ctx.store.seed_initial_data()
        if any(seeded.values()):
            typer.echo(
                f"Seeded {seeded['pages']} pages, {seeded['categories']} categories "
                f"and {seeded['announcements']} announcement into {ctx.data_dir}",
                err=True,
            )

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((config.host, config.port))
        sock.listen(128)
        host = str(sock.getsockname()[0])
        port = int(sock.getsockname()[1])
        url = f"http://{host}:{port}/"

        app = create_wiki_app(ctx=ctx)
        uvicorn_config = uvicorn.Config(
            app=app,
            host=host,
            port=port,
            access_log=False,
            log_level="error",
        )
        server = uvicorn.Server(config=uvicorn_config)

        print(f"Wiki: {url}", file=sys.stderr)
        if config.open_browser:
            webbrowser.open(url)

        _run_uvicorn_server(server, sock)

    print("Wiki server stopped.", file=sys.stderr)
