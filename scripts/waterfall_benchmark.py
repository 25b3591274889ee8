#!/usr/bin/env python3
"""
Waterfall benchmark comparing serial awaits with batched task loading.

Each simulated page renders N sibling components in template order; every
component needs the result of one async producer. The serial mode awaits each
producer in turn, the batched mode routes the same awaits through
``LazyTaskExecutor``.

Usage examples:
  PYTHONPATH=src python scripts/waterfall_benchmark.py
  PYTHONPATH=src python scripts/waterfall_benchmark.py --components 12 --latency-ms 25 --repeat 5
"""

from __future__ import annotations

import argparse
import asyncio
import statistics
import time

from autoload import create_task_context, create_task_executor, register, run_scoped


def make_producer(index: int, latency_s: float):
    async def producer(ctx):
        _ = ctx
        await asyncio.sleep(latency_s)
        return {"component": index}

    return producer


async def render_serial(num_components: int, latency_s: float) -> float:
    context = create_task_context(params={}, request="http://bench.local/page")
    started = time.perf_counter()
    for index in range(num_components):
        await make_producer(index, latency_s)(context)
    return time.perf_counter() - started


async def render_batched(num_components: int, latency_s: float) -> float:
    async def page() -> float:
        for index in range(num_components):
            register(f"component-{index}", make_producer(index, latency_s))
        executor = create_task_executor(params={}, request="http://bench.local/page")

        started = time.perf_counter()
        for index in range(num_components):
            await executor.get_data(f"component-{index}")
        return time.perf_counter() - started

    return await run_scoped(page)


async def run_benchmark(*, num_components: int, latency_ms: float, repeat: int) -> None:
    latency_s = latency_ms / 1000.0
    serial: list[float] = []
    batched: list[float] = []
    for _ in range(repeat):
        serial.append(await render_serial(num_components, latency_s))
        batched.append(await render_batched(num_components, latency_s))

    serial_p50 = statistics.median(serial)
    batched_p50 = statistics.median(batched)
    speedup = serial_p50 / batched_p50 if batched_p50 > 0 else 0.0

    print(f"components={num_components}")
    print(f"producer_latency_ms={latency_ms:.2f}")
    print(f"repeat={repeat}")
    print(f"serial_p50_ms={serial_p50 * 1000:.2f}")
    print(f"batched_p50_ms={batched_p50 * 1000:.2f}")
    print(f"speedup={speedup:.2f}x")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Waterfall benchmark utility")
    parser.add_argument("--components", type=int, default=8)
    parser.add_argument("--latency-ms", type=float, default=20.0)
    parser.add_argument("--repeat", type=int, default=3)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(
        run_benchmark(
            num_components=args.components,
            latency_ms=args.latency_ms,
            repeat=args.repeat,
        )
    )


if __name__ == "__main__":
    main()
