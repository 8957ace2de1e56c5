# infrastructure/storage/analysis_run_store.py
import json
from datetime import datetime
from typing import Dict, Any, Optional, List
import asyncpg
from domain.models.pipeline_state import RunStatus, AnalysisRunSnapshot
from shared.logging import logger

class AnalysisRunStore:
    """Postgres-backed record of every analysis run and its progress"""

    def __init__(self, database_url: str, connection_pool: Optional[asyncpg.Pool] = None):
        self.database_url = database_url
        self.connection_pool: Optional[asyncpg.Pool] = connection_pool

    async def initialize(self):
        """Initialize database connection pool and create tables"""
        if self.connection_pool is None:
            self.connection_pool = await asyncpg.create_pool(
                self.database_url,
                min_size=2,
                max_size=10,
                command_timeout=60
            )
        await self._create_tables()

    async def _create_tables(self):
        async with self.connection_pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS analysis_runs (
                    run_id VARCHAR(36) PRIMARY KEY,
                    status VARCHAR(20) NOT NULL,
                    project_root TEXT NOT NULL,
                    scan_data JSONB NOT NULL,
                    progress JSONB DEFAULT '[]',
                    result JSONB,
                    quality_scores JSONB,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    error_message TEXT
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS circuit_breaker_state (
                    agent_name VARCHAR(100) PRIMARY KEY,
                    state VARCHAR(20) NOT NULL,
                    failure_count INTEGER DEFAULT 0,
                    last_failure_time TIMESTAMP,
                    success_count INTEGER DEFAULT 0,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("CREATE INDEX IF NOT EXISTS idx_run_status ON analysis_runs(status)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_run_created ON analysis_runs(created_at)")

    async def create_run(self, run_id: str, project_root: str, scan_data: Dict[str, Any]) -> None:
        async with self.connection_pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO analysis_runs (run_id, status, project_root, scan_data)
                VALUES ($1, $2, $3, $4)
            """, run_id, RunStatus.PENDING.value, project_root, json.dumps(scan_data))

        logger.info("Analysis run created", run_id=run_id, project_root=project_root)

    async def update_status(self, run_id: str, status: RunStatus, error_message: Optional[str] = None) -> None:
        async with self.connection_pool.acquire() as conn:
            await conn.execute("""
                UPDATE analysis_runs
                SET status = $2, updated_at = CURRENT_TIMESTAMP, error_message = $3
                WHERE run_id = $1
            """, run_id, status.value, error_message)

        logger.info("Analysis run status updated", run_id=run_id, status=status.value, error=error_message)

    async def append_progress(self, run_id: str, phase: str, detail: Optional[str] = None) -> None:
        event = {"phase": phase, "detail": detail, "recorded_at": datetime.utcnow().isoformat()}
        async with self.connection_pool.acquire() as conn:
            await conn.execute("""
                UPDATE analysis_runs
                SET progress = progress || $2::jsonb, updated_at = CURRENT_TIMESTAMP
                WHERE run_id = $1
            """, run_id, json.dumps([event]))

    async def complete_run(self, run_id: str, result: Dict[str, Any], quality_scores: List[float]) -> None:
        async with self.connection_pool.acquire() as conn:
            await conn.execute("""
                UPDATE analysis_runs
                SET status = $2, result = $3, quality_scores = $4, updated_at = CURRENT_TIMESTAMP
                WHERE run_id = $1
            """, run_id, RunStatus.COMPLETED.value, json.dumps(result), json.dumps(quality_scores))

        logger.info("Analysis run completed", run_id=run_id, quality_scores=quality_scores)

    async def get_run(self, run_id: str) -> Optional[AnalysisRunSnapshot]:
        async with self.connection_pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM analysis_runs WHERE run_id = $1
            """, run_id)

            if row:
                return self._to_snapshot(row)
            return None

    async def list_runs(self, status: Optional[RunStatus] = None, limit: int = 100) -> List[AnalysisRunSnapshot]:
        async with self.connection_pool.acquire() as conn:
            if status:
                rows = await conn.fetch("""
                    SELECT * FROM analysis_runs
                    WHERE status = $1
                    ORDER BY created_at DESC
                    LIMIT $2
                """, status.value, limit)
            else:
                rows = await conn.fetch("""
                    SELECT * FROM analysis_runs
                    ORDER BY created_at DESC
                    LIMIT $1
                """, limit)

            return [self._to_snapshot(row) for row in rows]

    @staticmethod
    def _to_snapshot(row) -> AnalysisRunSnapshot:
        return AnalysisRunSnapshot(
            run_id=row["run_id"],
            status=RunStatus(row["status"]),
            project_root=row["project_root"],
            scan_data=json.loads(row["scan_data"]),
            progress=json.loads(row["progress"]) if row["progress"] else [],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            result=json.loads(row["result"]) if row["result"] else None,
            quality_scores=json.loads(row["quality_scores"]) if row["quality_scores"] else None,
            error_message=row["error_message"]
        )

    async def close(self):
        """Close database connection pool"""
        if self.connection_pool:
            await self.connection_pool.close()
            logger.info("Database connection pool closed")
