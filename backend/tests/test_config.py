"""
Tests for settings and store construction.

Tests: defaults, URL rewriting, production validation, create_store.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest

from config import Settings
from services.memory_store import MemoryStore
from services.sql_store import SqlStore
from services.store import create_store


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:

    @pytest.mark.unit
    def test_defaults(self):
        s = make_settings()
        assert s.store_backend == "memory"
        assert s.lock_timeout_seconds == 5.0
        assert s.action_retry_limit == 3

    @pytest.mark.unit
    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "sql")
        monkeypatch.setenv("ACTION_RETRY_LIMIT", "5")
        s = make_settings()
        assert s.store_backend == "sql"
        assert s.action_retry_limit == 5

    @pytest.mark.unit
    def test_async_url_rewrite(self):
        s = make_settings(database_url="sqlite:///./data/x.db")
        assert s.async_database_url == "sqlite+aiosqlite:///./data/x.db"
        s = make_settings(database_url="postgresql+asyncpg://db/orders")
        assert s.async_database_url == "postgresql+asyncpg://db/orders"

    @pytest.mark.unit
    def test_cors_list(self):
        s = make_settings(cors_origins="http://a.test, http://b.test")
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]


class TestValidateProductionSettings:

    @pytest.mark.unit
    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="STORE_BACKEND"):
            make_settings(store_backend="redis").validate_production_settings()

    @pytest.mark.unit
    def test_retry_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            make_settings(action_retry_limit=0).validate_production_settings()

    @pytest.mark.unit
    def test_memory_rejected_in_production(self):
        s = make_settings(environment="production", cors_origins="https://errands.example")
        with pytest.raises(ValueError, match="memory"):
            s.validate_production_settings()

    @pytest.mark.unit
    def test_wildcard_cors_rejected_in_production(self):
        s = make_settings(environment="production", store_backend="sql", cors_origins="*")
        with pytest.raises(ValueError, match="CORS"):
            s.validate_production_settings()

    @pytest.mark.unit
    def test_valid_production(self):
        s = make_settings(environment="production", store_backend="sql", cors_origins="https://errands.example")
        s.validate_production_settings()

    @pytest.mark.unit
    def test_development_only_warns(self, caplog):
        make_settings(cors_origins="*").validate_production_settings()
        assert "CORS_ORIGINS" in caplog.text


class TestCreateStore:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_memory(self):
        store = await create_store(make_settings(lock_timeout_seconds=1.5))
        assert isinstance(store, MemoryStore)
        await store.close()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_sql(self, tmp_path):
        store = await create_store(make_settings(store_backend="sql", database_url=f"sqlite:///{tmp_path / 'e.db'}"))
        assert isinstance(store, SqlStore)
        assert (await store.stats())["orders"] == 0
        await store.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown(self):
        with pytest.raises(ValueError):
            await create_store(make_settings(store_backend="redis"))
