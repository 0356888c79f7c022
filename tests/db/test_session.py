"""Tests for engine construction."""
from core.config import Settings
from db.session import create_engine_from_settings


async def test__create_engine_from_settings__pool_and_driver() -> None:
    settings = Settings(
        _env_file=None,
        database_url="postgresql+asyncpg://user:pw@db.internal:5432/linkshelf",
        SECRET_KEY="a-test-secret-that-is-long-enough-to-use",
        DB_POOL_SIZE=3,
        DB_MAX_OVERFLOW=4,
        DB_POOL_TIMEOUT=2.5,
    )

    engine = create_engine_from_settings(settings)
    try:
        assert engine.url.drivername == "postgresql+asyncpg"
        assert engine.url.database == "linkshelf"
        assert engine.pool.size() == 3
        assert engine.pool.timeout() == 2.5
    finally:
        await engine.dispose()
