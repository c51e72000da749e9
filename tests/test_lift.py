# tests/test_lift.py
import asyncio

import pytest
from kungfu import Error, Ok

from artisan._errors import ErrorKind, Errors
from artisan.lift import from_result, remote, retrying

from support import err, ok


class TestRemote:
    @pytest.mark.asyncio
    async def test_exception_becomes_remote_unavailable(self):
        async def call():
            raise ConnectionError("connection reset by peer")

        e = err(await remote(call, what="list_products"), ErrorKind.REMOTE_UNAVAILABLE)

        assert e.message == "list_products failed"
        assert "reset" in (e.reason or "")

    @pytest.mark.asyncio
    async def test_domain_errors_pass_through(self):
        async def call():
            return Error(Errors.not_found("product", "prd_9"))

        err(await remote(call, what="get_product"), ErrorKind.NOT_FOUND)

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self):
        async def call():
            await asyncio.sleep(0.5)
            return Ok(1)

        e = err(await remote(call, what="list_products", timeout=0.02), ErrorKind.REMOTE_UNAVAILABLE)

        assert "timed out" in e.message

    @pytest.mark.asyncio
    async def test_fast_call_within_timeout(self):
        async def call():
            return Ok(7)

        assert ok(await remote(call, what="count", timeout=1.0)) == 7


class TestRetrying:
    @pytest.mark.asyncio
    async def test_retries_unavailable_until_success(self):
        calls = []

        async def call():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("flaky")
            return Ok("done")

        result = await retrying(remote(call, what="follow"), attempts=3, what="follow")

        assert ok(result) == "done"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        calls = []

        async def call():
            calls.append(1)
            raise ConnectionError("down")

        err(await retrying(remote(call, what="follow"), attempts=2, what="follow"), ErrorKind.REMOTE_UNAVAILABLE)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_domain_errors_are_not_retried(self):
        calls = []

        async def call():
            calls.append(1)
            return Error(Errors.forbidden("admins only"))

        err(await retrying(remote(call, what="approve"), attempts=3, what="approve"), ErrorKind.FORBIDDEN)
        assert len(calls) == 1


@pytest.mark.asyncio
async def test_from_result_replays_value():
    assert ok(await from_result(Ok(3))) == 3
