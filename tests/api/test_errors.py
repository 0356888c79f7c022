"""
Tests for database failure handling.

Transient failures (lost connections, exhausted pool) map to 503 with a
Retry-After header; other database errors are a plain 500.
"""
from collections.abc import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from api.main import TRANSIENT_RETRY_AFTER, app, is_transient_db_error
from db.session import get_async_session


def _failing_session(exc: Exception) -> Callable[[], AsyncGenerator[None]]:
    async def override() -> AsyncGenerator[None]:
        raise exc
        yield  # pragma: no cover

    return override


@pytest.fixture
async def failing_client() -> AsyncGenerator[Callable[[Exception], AsyncClient]]:
    """Client whose database session dependency raises the given error."""
    clients: list[AsyncClient] = []

    def make(exc: Exception) -> AsyncClient:
        app.dependency_overrides[get_async_session] = _failing_session(exc)
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()


async def test_operational_error_is_503(failing_client: Callable) -> None:
    client = failing_client(OperationalError("SELECT 1", {}, ConnectionRefusedError()))

    response = await client.get("/api/tags")

    assert response.status_code == 503
    assert response.headers["retry-after"] == str(TRANSIENT_RETRY_AFTER)
    assert response.json()["retryable"] is True


async def test_pool_timeout_is_503(failing_client: Callable) -> None:
    client = failing_client(PoolTimeoutError("QueuePool limit reached"))

    response = await client.get("/api/tags")

    assert response.status_code == 503
    assert response.json()["retryable"] is True


async def test_invalidated_connection_is_503(failing_client: Callable) -> None:
    client = failing_client(
        DBAPIError("SELECT 1", {}, Exception("server closed"), connection_invalidated=True),
    )

    response = await client.get("/api/tags")

    assert response.status_code == 503


async def test_other_database_error_is_500(failing_client: Callable) -> None:
    client = failing_client(DBAPIError("SELECT 1", {}, Exception("syntax error")))

    response = await client.get("/api/tags")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "retryable": False}
    assert "retry-after" not in response.headers


class TestIsTransientDbError:
    def test__operational_error(self) -> None:
        assert is_transient_db_error(OperationalError("x", {}, Exception()))

    def test__pool_timeout(self) -> None:
        assert is_transient_db_error(PoolTimeoutError("pool"))

    def test__invalidated_connection(self) -> None:
        exc = DBAPIError("x", {}, Exception(), connection_invalidated=True)
        assert is_transient_db_error(exc)

    def test__constraint_violation_is_permanent(self) -> None:
        assert not is_transient_db_error(IntegrityError("x", {}, Exception()))

    def test__unrelated_exception(self) -> None:
        assert not is_transient_db_error(ValueError("nope"))
