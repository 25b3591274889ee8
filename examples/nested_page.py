"""
nested_page.py — Page with sibling components loading data in one batch.

Each component registers its producer under its own task id and awaits the
result in template order. The producers still run concurrently, so the page
takes as long as the slowest component rather than the sum of all of them.

Usage:
    pip install fastapi uvicorn
    PYTHONPATH=src uvicorn examples.nested_page:app --reload
"""

import asyncio

from fastapi import FastAPI, Request

from autoload import AutoLoadMiddleware, AutoLoadSettings, define_task, get_task_data, register

app = FastAPI()
app.add_middleware(AutoLoadMiddleware, settings=AutoLoadSettings.from_env())


async def fetch_json(name: str, delay_s: float) -> dict:
    await asyncio.sleep(delay_s)
    return {"source": name}


@define_task
async def header_task(ctx):
    return await ctx.dedupe("profile", lambda: fetch_json("profile", 0.10))


@define_task
async def feed_task(ctx):
    return await fetch_json(f"feed:{ctx.url.path}", 0.05)


@define_task
async def sidebar_task(ctx):
    # Shares the in-flight profile fetch with the header.
    profile = await ctx.dedupe("profile", lambda: fetch_json("profile", 0.10))
    return {"profile": profile, "links": ["home", "about"]}


COMPONENTS = (
    ("components.header", header_task),
    ("components.feed", feed_task),
    ("components.sidebar", sidebar_task),
)


async def render_component(request: Request, task_id: str) -> dict:
    return {"component": task_id, "data": await get_task_data(request, task_id)}


@app.get("/")
async def index(request: Request) -> dict:
    # Components register while their modules are evaluated, before rendering.
    for task_id, producer in COMPONENTS:
        register(task_id, producer)

    parts = []
    for task_id, _ in COMPONENTS:
        parts.append(await render_component(request, task_id))
    return {"components": parts}
