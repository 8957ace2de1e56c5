# shared/logging.py
import structlog
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

def _configure_structlog(renderer) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

# JSON lines until setup_logging says otherwise
_configure_structlog(structlog.processors.JSONRenderer())

logger = structlog.get_logger()

logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=logging.INFO,
)

def setup_logging(level: str = "INFO", json_logs: bool = True):
    """Apply LOG_LEVEL and pick JSON or console rendering"""
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))

    if not json_logs:
        _configure_structlog(structlog.dev.ConsoleRenderer())

def log_agent_execution(
    agent_name: str,
    run_id: Optional[str],
    execution_time_ms: int,
    success: bool,
    steps_used: Optional[int] = None,
    used_fallback: bool = False,
    error_message: Optional[str] = None
):
    """Log a single agent call and whether its fallback was used"""
    extra_data = {
        "agent_name": agent_name,
        "run_id": run_id,
        "execution_time_ms": execution_time_ms,
        "success": success,
        "used_fallback": used_fallback
    }

    if steps_used is not None:
        extra_data["steps_used"] = steps_used

    if error_message:
        extra_data["error_message"] = error_message
        logger.warning("Agent execution failed", **extra_data)
    else:
        logger.info("Agent execution completed", **extra_data)

def log_circuit_breaker_event(
    agent_name: str,
    event_type: str,
    state: str,
    failure_count: int,
    additional_context: Optional[Dict[str, Any]] = None
):
    """Log circuit breaker state changes"""
    extra_data = {
        "agent_name": agent_name,
        "event_type": event_type,
        "circuit_state": state,
        "failure_count": failure_count
    }

    if additional_context:
        extra_data.update(additional_context)

    logger.info("Circuit breaker event", **extra_data)

def log_phase(
    run_id: Optional[str],
    phase: str,
    status: str,
    detail: Optional[str] = None
):
    """Log pipeline phase transitions"""
    logger.info("Pipeline phase",
               run_id=run_id,
               phase=phase,
               status=status,
               detail=detail)

def log_evaluation(
    run_id: Optional[str],
    iteration: int,
    quality_score: float,
    gate_passed: bool,
    issues: List[str]
):
    """Log one quality-gate evaluation"""
    logger.info("Quality gate evaluated",
               run_id=run_id,
               iteration=iteration,
               quality_score=quality_score,
               gate_passed=gate_passed,
               issue_count=len(issues),
               issues=issues[:5])

def elapsed_ms(start_time: datetime) -> int:
    return int((datetime.utcnow() - start_time).total_seconds() * 1000)
