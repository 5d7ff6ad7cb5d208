from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _no_threads_in_unit_tests(monkeypatch: pytest.MonkeyPatch):
    """Run `asyncio.to_thread` inline for unit tests.

    The write and query paths push store calls into worker threads. Unit tests
    use stores that never block, so running them inline keeps the tests
    deterministic. Real threads are exercised in the integration tests.
    """

    async def _to_thread(func, /, *args, **kwargs):  # noqa: ANN001, D401
        return func(*args, **kwargs)

    monkeypatch.setattr("eventlog.recorder.asyncio.to_thread", _to_thread)
    yield
