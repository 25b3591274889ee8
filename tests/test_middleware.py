from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from autoload import (
    AutoLoadMiddleware,
    AutoLoadSettings,
    current_orchestrator,
    define_task,
    get_task_data,
    register,
)


def _build_app(calls: dict[str, int], **middleware_kwargs) -> FastAPI:
    app = FastAPI()
    app.add_middleware(AutoLoadMiddleware, **middleware_kwargs)

    @define_task
    async def load_post(ctx):
        calls["post"] = calls.get("post", 0) + 1
        return {"path": ctx.url.path}

    @define_task
    async def load_params(ctx):
        calls["params"] = calls.get("params", 0) + 1
        return dict(ctx.params)

    @define_task
    async def load_agent(ctx):
        calls["agent"] = calls.get("agent", 0) + 1
        return ctx.get("user_agent")

    @app.get("/posts/{post_id}")
    async def post_page(request: Request, post_id: str):
        register("post", load_post)
        register("agent", load_agent)
        register("params", load_params)
        post = await get_task_data(request, "post")
        again = await get_task_data(request, "post")
        agent = await get_task_data(request, "agent")
        params = await get_task_data(request, "params")
        missing = await get_task_data(request, "missing")
        return {
            "post_id": post_id,
            "post": post,
            "same": post is again,
            "agent": agent,
            "params": params,
            "missing": missing,
        }

    @app.get("/api/ping")
    async def api_ping(request: Request):
        registered = register("post", load_post)
        return {
            "attached": current_orchestrator(request) is not None,
            "registered": registered,
            "data": await get_task_data(request, "post"),
        }

    return app


def test_middleware_attaches_one_executor_per_request():
    calls: dict[str, int] = {}
    app = _build_app(
        calls,
        extend=lambda request: {"user_agent": request.headers.get("user-agent")},
    )

    with TestClient(app) as client:
        first = client.get("/posts/42").json()
        second = client.get("/posts/43").json()

    assert first == {
        "post_id": "42",
        "post": {"path": "/posts/42"},
        "same": True,
        "agent": "testclient",
        "params": {"post_id": "42"},
        "missing": None,
    }
    assert second["post"] == {"path": "/posts/43"}
    assert second["params"] == {"post_id": "43"}
    # Each request has its own scope, so each runs its producers once.
    assert calls == {"post": 2, "agent": 2, "params": 2}


def test_skipped_paths_get_no_scope():
    calls: dict[str, int] = {}
    app = _build_app(calls)

    with TestClient(app) as client:
        body = client.get("/api/ping").json()

    assert body == {"attached": False, "registered": False, "data": None}
    assert calls == {}


def test_custom_state_key_and_prefixes():
    calls: dict[str, int] = {}
    app = FastAPI()
    app.add_middleware(
        AutoLoadMiddleware,
        settings=AutoLoadSettings(skip_path_prefixes=("/static",), state_key="tasks"),
    )

    async def load(ctx):
        calls["page"] = calls.get("page", 0) + 1
        return "page"

    @app.get("/api/page")
    async def page(request: Request):
        register("page", load)
        return {
            "default_key": await get_task_data(request, "page"),
            "custom_key": await get_task_data(request, "page", state_key="tasks"),
        }

    with TestClient(app) as client:
        body = client.get("/api/page").json()

    assert body == {"default_key": None, "custom_key": "page"}
    assert calls == {"page": 1}
