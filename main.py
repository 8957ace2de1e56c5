# main.py
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Depends

# Internal imports
from application.orchestrators.multi_agent_orchestrator import MultiAgentOrchestrator
from infrastructure.llm.language_model import load_language_model
from infrastructure.resilience.circuit_breaker import CircuitBreakerRegistry, CircuitBreakerConfig
from infrastructure.storage.analysis_run_store import AnalysisRunStore
from infrastructure.web import analysis_api
from shared.config import AgentSettings
from shared.logging import logger, setup_logging

__version__ = "0.1.0"

# Global application state
app_state = {}

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""

    settings = AgentSettings.from_env()
    setup_logging(level=settings.log_level, json_logs=settings.json_logs)
    logger.info("Starting devcontext agent", version=__version__)

    try:
        run_store = AnalysisRunStore(settings.database_url)
        await run_store.initialize()
        app_state["run_store"] = run_store
        app_state["db_pool"] = run_store.connection_pool

        circuit_breaker_registry = CircuitBreakerRegistry(
            run_store.connection_pool,
            CircuitBreakerConfig(failure_threshold=3, timeout_seconds=settings.model_timeout_seconds)
        )
        app_state["circuit_breaker_registry"] = circuit_breaker_registry

        model = load_language_model(settings.language_model_factory)
        app_state["orchestrator"] = MultiAgentOrchestrator(model, settings, circuit_breaker_registry)

        logger.info("Application initialized successfully",
                    web_search=settings.has_web_search,
                    docs_lookup=settings.has_docs_lookup,
                    model_configured=bool(settings.language_model_factory))

    except Exception as e:
        logger.error("Failed to initialize application", error=str(e))
        raise

    yield

    logger.info("Shutting down devcontext agent")

    if "run_store" in app_state:
        await app_state["run_store"].close()

app = FastAPI(
    title="devcontext agent",
    description="Multi-agent analysis that turns a scanned codebase into a development-context artifact",
    version=__version__,
    lifespan=lifespan
)

# Dependency injection
async def get_run_store() -> AnalysisRunStore:
    return app_state["run_store"]

async def get_orchestrator() -> MultiAgentOrchestrator:
    return app_state["orchestrator"]

async def get_circuit_breaker_registry() -> CircuitBreakerRegistry:
    return app_state["circuit_breaker_registry"]

app.dependency_overrides[analysis_api.get_run_store] = get_run_store
app.dependency_overrides[analysis_api.get_orchestrator] = get_orchestrator

@app.get("/health")
async def health_check(
    circuit_breaker_registry: CircuitBreakerRegistry = Depends(get_circuit_breaker_registry)
):
    """System health check"""

    try:
        async with app_state["db_pool"].acquire() as conn:
            await conn.fetchval("SELECT 1")

        circuit_status = await circuit_breaker_registry.get_all_status()
        open_circuits = [name for name, status in circuit_status.items()
                         if status["state"] == "open"]

        return {
            "status": "healthy" if not open_circuits else "degraded",
            "database": "connected",
            "circuit_breakers": circuit_status,
            "open_circuits": open_circuits,
            "version": __version__,
            "timestamp": datetime.utcnow().isoformat()
        }

    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.utcnow().isoformat()
        }

@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "service": "devcontext agent",
        "version": __version__,
        "endpoints": {
            "start_analysis": "POST /analyses",
            "list_analyses": "GET /analyses",
            "analysis_status": "GET /analyses/{run_id}",
            "analysis_result": "GET /analyses/{run_id}/result",
            "health_check": "GET /health"
        }
    }

app.include_router(analysis_api.router)

if __name__ == "__main__":
    import uvicorn

    settings = AgentSettings.from_env()
    uvicorn.run("main:app", host=settings.host, port=settings.port)
