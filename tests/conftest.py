from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest

from notes_backend.db import dispose_engine_cache


@pytest.fixture
def anyio_backend() -> str:
    # The stack (SQLAlchemy asyncio + aiosqlite) is asyncio-only.
    return "asyncio"


@pytest.fixture(autouse=True)
async def _dispose_engine_cache_per_test(  # pyright: ignore[reportUnusedFunction]
    anyio_backend: object,  # noqa: ARG001
) -> AsyncGenerator[None, None]:
    # Dispose the cached AsyncEngine (aiosqlite worker thread) while the
    # per-test event loop is still alive, so the next test starts fresh.
    _ = anyio_backend
    yield
    await dispose_engine_cache()
