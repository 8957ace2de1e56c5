# tests/unit/infrastructure/storage/test_analysis_run_store.py
import json
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from domain.models.pipeline_state import RunStatus
from infrastructure.storage.analysis_run_store import AnalysisRunStore

@pytest.fixture
def mock_conn():
    conn = AsyncMock()
    conn.execute.return_value = None
    return conn

@pytest.fixture
def mock_db_pool(mock_conn):
    """Mock database pool for testing"""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = mock_conn
    pool.acquire.return_value.__aexit__.return_value = None
    pool.close = AsyncMock()
    return pool

def run_row(**overrides):
    now = datetime(2026, 3, 1, 12, 0)
    row = {
        "run_id": "run-1",
        "status": "completed",
        "project_root": "/projects/shop",
        "scan_data": json.dumps({"projectRoot": "/projects/shop"}),
        "progress": json.dumps([{"phase": "Phase 1: Planning", "detail": None}]),
        "result": json.dumps({"commands": {"test": "pnpm test"}}),
        "quality_scores": json.dumps([7.0]),
        "created_at": now,
        "updated_at": now,
        "error_message": None,
    }
    row.update(overrides)
    return row

class TestAnalysisRunStore:
    """Test run bookkeeping against a mocked pool"""

    @pytest.mark.asyncio
    async def test_initialize_with_existing_pool_creates_tables(self, mock_db_pool, mock_conn):
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        await store.initialize()

        statements = " ".join(call.args[0] for call in mock_conn.execute.await_args_list)
        assert "CREATE TABLE IF NOT EXISTS analysis_runs" in statements
        assert "CREATE TABLE IF NOT EXISTS circuit_breaker_state" in statements

    @pytest.mark.asyncio
    async def test_create_run(self, mock_db_pool, mock_conn):
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        await store.create_run("run-1", "/projects/shop", {"projectRoot": "/projects/shop"})

        args = mock_conn.execute.await_args.args
        assert args[1:] == ("run-1", "pending", "/projects/shop", '{"projectRoot": "/projects/shop"}')

    @pytest.mark.asyncio
    async def test_update_status_and_progress(self, mock_db_pool, mock_conn):
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        await store.update_status("run-1", RunStatus.FAILED, error_message="boom")
        assert mock_conn.execute.await_args.args[1:] == ("run-1", "failed", "boom")

        await store.append_progress("run-1", "Phase 2: Parallel workers", "3 researchers")
        args = mock_conn.execute.await_args.args
        assert "progress || $2::jsonb" in args[0]
        event = json.loads(args[2])[0]
        assert event["phase"] == "Phase 2: Parallel workers"
        assert event["detail"] == "3 researchers"

    @pytest.mark.asyncio
    async def test_complete_run(self, mock_db_pool, mock_conn):
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        await store.complete_run("run-1", {"commands": {}}, [5.0, 8.0])

        assert mock_conn.execute.await_args.args[1:] == ("run-1", "completed", '{"commands": {}}', "[5.0, 8.0]")

    @pytest.mark.asyncio
    async def test_get_run(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = run_row()
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        run = await store.get_run("run-1")

        assert run.status == RunStatus.COMPLETED
        assert run.scan_data == {"projectRoot": "/projects/shop"}
        assert run.progress[0]["phase"] == "Phase 1: Planning"
        assert run.result == {"commands": {"test": "pnpm test"}}
        assert run.quality_scores == [7.0]

    @pytest.mark.asyncio
    async def test_get_missing_run(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = None
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        assert await store.get_run("missing") is None

    @pytest.mark.asyncio
    async def test_list_runs_by_status(self, mock_db_pool, mock_conn):
        mock_conn.fetch.return_value = [
            run_row(status="running", result=None, quality_scores=None, progress="[]"),
        ]
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        runs = await store.list_runs(RunStatus.RUNNING, limit=10)

        assert mock_conn.fetch.await_args.args[1:] == ("running", 10)
        assert runs[0].result is None
        assert runs[0].quality_scores is None
        assert runs[0].progress == []

    @pytest.mark.asyncio
    async def test_close(self, mock_db_pool):
        store = AnalysisRunStore("postgresql://unused", connection_pool=mock_db_pool)

        await store.close()

        mock_db_pool.close.assert_awaited_once()
