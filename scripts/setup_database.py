# scripts/setup_database.py
"""
Database setup script for the devcontext agent.
Creates the analysis run and circuit breaker tables.
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import asyncpg
from shared.logging import logger, setup_logging

EXPECTED_TABLES = {"analysis_runs", "circuit_breaker_state"}

async def create_database_if_not_exists(admin_url: str, database_name: str):
    """Create database if it doesn't exist"""
    admin_conn = await asyncpg.connect(admin_url)
    try:
        db_exists = await admin_conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1", database_name
        )
        if not db_exists:
            await admin_conn.execute(f'CREATE DATABASE "{database_name}"')
            logger.info("Created database", database=database_name)
        else:
            logger.info("Database already exists", database=database_name)
    finally:
        await admin_conn.close()

async def setup_tables(database_url: str):
    """Create all required tables, indexes and triggers"""

    conn = await asyncpg.connect(database_url)

    try:
        logger.info("Creating database tables")

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS analysis_runs (
                run_id VARCHAR(36) PRIMARY KEY,
                status VARCHAR(20) NOT NULL
                    CHECK (status IN ('pending', 'running', 'completed', 'failed')),
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
                state VARCHAR(20) NOT NULL
                    CHECK (state IN ('closed', 'open', 'half_open')),
                failure_count INTEGER DEFAULT 0,
                last_failure_time TIMESTAMP,
                success_count INTEGER DEFAULT 0,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await conn.execute("CREATE INDEX IF NOT EXISTS idx_run_status ON analysis_runs(status)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_run_created ON analysis_runs(created_at)")

        await conn.execute("""
            CREATE OR REPLACE FUNCTION update_updated_at_column()
            RETURNS TRIGGER AS $$
            BEGIN
                NEW.updated_at = CURRENT_TIMESTAMP;
                RETURN NEW;
            END;
            $$ language 'plpgsql'
        """)

        await conn.execute("""
            DROP TRIGGER IF EXISTS update_analysis_runs_updated_at ON analysis_runs;
            CREATE TRIGGER update_analysis_runs_updated_at
                BEFORE UPDATE ON analysis_runs
                FOR EACH ROW
                EXECUTE FUNCTION update_updated_at_column()
        """)

        logger.info("Database tables created", tables=sorted(EXPECTED_TABLES))

    finally:
        await conn.close()

async def verify_setup(database_url: str):
    """Check the tables exist and a run row can round-trip"""

    conn = await asyncpg.connect(database_url)

    try:
        rows = await conn.fetch("""
            SELECT table_name FROM information_schema.tables
            WHERE table_schema = 'public'
        """)
        missing = EXPECTED_TABLES - {row['table_name'] for row in rows}
        if missing:
            raise RuntimeError(f"Missing tables: {sorted(missing)}")

        test_run_id = 'setup-verification'
        await conn.execute("""
            INSERT INTO analysis_runs (run_id, status, project_root, scan_data)
            VALUES ($1, 'pending', '/tmp', '{"test": true}')
            ON CONFLICT (run_id) DO NOTHING
        """, test_run_id)
        found = await conn.fetchval("SELECT 1 FROM analysis_runs WHERE run_id = $1", test_run_id)
        await conn.execute("DELETE FROM analysis_runs WHERE run_id = $1", test_run_id)
        if not found:
            raise RuntimeError("Failed to insert/query test record")

        logger.info("Database verification completed")

    finally:
        await conn.close()

async def main():
    setup_logging(level="INFO", json_logs=False)

    database_url = os.getenv("DATABASE_URL")

    if not database_url:
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        database = os.getenv("DB_NAME", "devcontext")

        database_url = f"postgresql://{user}:{password}@{host}:{port}/{database}"
        admin_url = f"postgresql://{user}:{password}@{host}:{port}/postgres"

        logger.info("Using database", host=host, port=port, database=database)

        try:
            await create_database_if_not_exists(admin_url, database)
        except Exception as e:
            logger.warning("Could not create database (may already exist)", error=str(e))

    try:
        await setup_tables(database_url)
        await verify_setup(database_url)
        logger.info("Database setup completed")
    except Exception as e:
        logger.error("Database setup failed", error=str(e))
        sys.exit(1)

if __name__ == "__main__":
    asyncio.run(main())
