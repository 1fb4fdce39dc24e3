"""
LangSmith tracing for the tutor pipeline.

Set these variables in .env to enable tracing:
    LANGCHAIN_TRACING_V2=true
    LANGCHAIN_API_KEY=ls__...
    LANGCHAIN_PROJECT=kids-voice-tutor   (optional)

When the variables are missing, ``traceable`` returns the function unchanged
and ``log_run`` does nothing.
"""

from __future__ import annotations

import os
from typing import Any, Callable, TypeVar

from src.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_DEFAULT_PROJECT = "kids-voice-tutor"


def _tracing_enabled() -> bool:
    return (
        os.getenv("LANGCHAIN_TRACING_V2", "").lower() in ("true", "1", "yes")
        and bool(os.getenv("LANGCHAIN_API_KEY", "").strip())
    )


_client = None


def get_langsmith_client():
    """Return a cached LangSmith Client, or None if tracing is not configured."""
    global _client
    if _client is not None:
        return _client
    if not _tracing_enabled():
        return None
    from langsmith import Client

    try:
        _client = Client(api_key=os.getenv("LANGCHAIN_API_KEY"))
    except Exception as exc:
        logger.warning("LangSmith client init failed: %s", exc)
        return None
    logger.info(
        "LangSmith tracing enabled. Project: %s",
        os.getenv("LANGCHAIN_PROJECT", _DEFAULT_PROJECT),
    )
    return _client


def traceable(
    name: str | None = None,
    run_type: str = "chain",
    tags: list[str] | None = None,
) -> Callable[[F], F]:
    """
    Wrap a function with LangSmith tracing when tracing is configured.

    Usage
    -----
    @traceable(name="tutor_reply", run_type="llm", tags=["tutor"])
    def generate_reply(...):
        ...
    """
    def decorator(func: F) -> F:
        if not _tracing_enabled():
            return func

        from langsmith.run_helpers import traceable as ls_traceable

        return ls_traceable(  # type: ignore[return-value]
            run_type=run_type,
            name=name or func.__name__,
            tags=tags or [],
        )(func)

    return decorator


def log_run(
    name: str,
    inputs: dict,
    outputs: dict,
    run_type: str = "chain",
    tags: list[str] | None = None,
    error: str | None = None,
) -> None:
    """
    Log a single finished run to LangSmith.

    Used by the orchestrator to record one span per tutoring turn, including
    failed turns (pass *error*).  Failures to reach LangSmith are logged at
    debug level and never raised.
    """
    client = get_langsmith_client()
    if client is None:
        return
    import uuid
    from datetime import datetime, timezone

    run_id = uuid.uuid4()
    project = os.getenv("LANGCHAIN_PROJECT", _DEFAULT_PROJECT)
    try:
        client.create_run(
            id=run_id,
            name=name,
            run_type=run_type,
            inputs=inputs,
            start_time=datetime.now(timezone.utc),
            project_name=project,
            tags=tags or [],
        )
        client.update_run(
            run_id=run_id,
            outputs=outputs,
            end_time=datetime.now(timezone.utc),
            error=error,
        )
        logger.debug("LangSmith: logged run '%s'", name)
    except Exception as exc:
        logger.debug("LangSmith log_run failed: %s", exc)
