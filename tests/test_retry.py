import pytest
from sqlalchemy.exc import OperationalError

from worktime.db.retry import run_read


def _conn_error():
    return OperationalError("SELECT 1", {}, Exception("connection reset"))


async def test_retries_connection_errors(session_factory):
    calls = []

    async def flaky(session):
        calls.append(session)
        if len(calls) < 3:
            raise _conn_error()
        return "ok"

    assert await run_read(flaky, session_factory=session_factory, attempts=3, base_delay=0) == "ok"
    # a fresh session per attempt
    assert len(calls) == 3
    assert len({id(s) for s in calls}) == 3


async def test_gives_up_after_attempts(session_factory):
    calls = []

    async def down(session):
        calls.append(1)
        raise _conn_error()

    with pytest.raises(OperationalError):
        await run_read(down, session_factory=session_factory, attempts=2, base_delay=0)
    assert len(calls) == 2


async def test_other_errors_are_not_retried(session_factory):
    calls = []

    async def broken(session):
        calls.append(1)
        raise ValueError("bad query")

    with pytest.raises(ValueError):
        await run_read(broken, session_factory=session_factory, attempts=3, base_delay=0)
    assert len(calls) == 1


async def test_passes_arguments(session_factory):
    async def echo(session, a, b=None):
        return a, b

    assert await run_read(echo, 1, b=2, session_factory=session_factory) == (1, 2)
