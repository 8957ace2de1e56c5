# infrastructure/web/analysis_api.py
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from domain.models.pipeline_state import AnalysisRunSnapshot, RunStatus
from domain.models.scan_request import ScanResultModel
from domain.models.stack import ScanResult
from application.orchestrators.multi_agent_orchestrator import MultiAgentOrchestrator
from infrastructure.storage.analysis_run_store import AnalysisRunStore
from infrastructure.storage.context_store import ContextStore
from shared.logging import logger

router = APIRouter(prefix="/analyses", tags=["analyses"])

# Dependency injection functions, overridden by the application
async def get_run_store() -> AnalysisRunStore:
    raise NotImplementedError("run store not configured")

async def get_orchestrator() -> MultiAgentOrchestrator:
    raise NotImplementedError("orchestrator not configured")

class AnalysisRequest(BaseModel):
    scan_result: ScanResultModel
    persist_context: bool = Field(default=False, description="Write .devcontext/context.json into the project")

class AnalysisStartedResponse(BaseModel):
    run_id: str
    status: str
    status_url: str
    message: str

class AnalysisStatusResponse(BaseModel):
    run_id: str
    status: str
    project_root: str
    progress: List[Dict[str, Any]]
    quality_scores: Optional[List[float]] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

@router.post("", response_model=AnalysisStartedResponse)
async def start_analysis(
    request: AnalysisRequest,
    background_tasks: BackgroundTasks,
    run_store: AnalysisRunStore = Depends(get_run_store),
    orchestrator: MultiAgentOrchestrator = Depends(get_orchestrator)
):
    """Record a new run and execute the pipeline in the background"""

    try:
        run_id = str(uuid.uuid4())
        scan_result = request.scan_result.to_domain()

        await run_store.create_run(
            run_id,
            scan_result.project_root,
            request.scan_result.model_dump(by_alias=True)
        )

        background_tasks.add_task(
            execute_analysis_run,
            run_id,
            scan_result,
            orchestrator,
            run_store,
            request.persist_context
        )

        logger.info("Analysis started", run_id=run_id, project_root=scan_result.project_root)

        return AnalysisStartedResponse(
            run_id=run_id,
            status=RunStatus.PENDING.value,
            status_url=f"/analyses/{run_id}",
            message="Analysis started"
        )

    except Exception as e:
        logger.error("Failed to start analysis", error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to start analysis: {str(e)}")

def _status_response(run: AnalysisRunSnapshot) -> AnalysisStatusResponse:
    return AnalysisStatusResponse(
        run_id=run.run_id,
        status=run.status.value,
        project_root=run.project_root,
        progress=run.progress,
        quality_scores=run.quality_scores,
        error_message=run.error_message,
        created_at=run.created_at,
        updated_at=run.updated_at
    )

@router.get("", response_model=List[AnalysisStatusResponse])
async def list_analyses(
    status: Optional[RunStatus] = Query(None, description="Only runs in this status"),
    limit: int = Query(20, ge=1, le=100),
    run_store: AnalysisRunStore = Depends(get_run_store)
):
    """Most recent runs first"""

    try:
        runs = await run_store.list_runs(status, limit=limit)
        return [_status_response(run) for run in runs]

    except Exception as e:
        logger.error("Failed to list analyses", status=status.value if status else None, error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to list analyses: {str(e)}")

@router.get("/{run_id}", response_model=AnalysisStatusResponse)
async def get_analysis_status(
    run_id: str,
    run_store: AnalysisRunStore = Depends(get_run_store)
):
    try:
        run = await run_store.get_run(run_id)
        if not run:
            raise HTTPException(status_code=404, detail="Analysis run not found")

        return _status_response(run)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to get analysis status", run_id=run_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to get analysis status: {str(e)}")

@router.get("/{run_id}/result")
async def get_analysis_result(
    run_id: str,
    run_store: AnalysisRunStore = Depends(get_run_store)
):
    """Final development-context artifact of a completed run"""

    try:
        run = await run_store.get_run(run_id)
        if not run:
            raise HTTPException(status_code=404, detail="Analysis run not found")

        if run.status != RunStatus.COMPLETED:
            raise HTTPException(
                status_code=400,
                detail=f"Analysis not completed. Current status: {run.status.value}"
            )

        return {
            "run_id": run_id,
            "status": run.status.value,
            "analysis": run.result,
            "quality_scores": run.quality_scores or [],
            "completed_at": run.updated_at.isoformat()
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to get analysis result", run_id=run_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to get analysis result: {str(e)}")

async def execute_analysis_run(
    run_id: str,
    scan_result: ScanResult,
    orchestrator: MultiAgentOrchestrator,
    run_store: AnalysisRunStore,
    persist_context: bool = False
):
    """Run the pipeline and record its progress and outcome"""

    async def record_progress(phase: str, detail: Optional[str] = None):
        await run_store.append_progress(run_id, phase, detail)

    try:
        await run_store.update_status(run_id, RunStatus.RUNNING)
        result = await orchestrator.run(scan_result, on_progress=record_progress, run_id=run_id)

        if persist_context:
            await ContextStore(scan_result.project_root).save(result.analysis, scan_result)

        scores = result.loop_outcome.scores if result.loop_outcome else []
        await run_store.complete_run(run_id, result.analysis.to_dict(), scores)
        logger.info("Background analysis completed", run_id=run_id, used_fallback=result.used_fallback)
    except Exception as e:
        logger.error("Background analysis failed", run_id=run_id, error=str(e))
        await run_store.update_status(run_id, RunStatus.FAILED, error_message=str(e))
