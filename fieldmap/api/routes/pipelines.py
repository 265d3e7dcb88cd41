"""API routes for pipeline definitions and record-level execution.

Pipelines are named, saved lists of transformation steps. The apply
endpoint runs either a saved pipeline (by key) or inline steps against a
record.
"""

import logging
import time
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from fieldmap import config
from fieldmap.errors import TransformationError
from fieldmap.transformations.context import TransformContext
from fieldmap.transformations.pipeline import TransformationPipeline
from fieldmap.transformations.registry import get_pipeline_registry
from fieldmap.transformations.schemas import (
    PipelineDefinition,
    PipelineSummary,
    TransformationStep,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipelines", tags=["pipelines"])


# ── Request/Response schemas ─────────────────────────────


class PipelineApplyRequest(BaseModel):
    """Request to apply a pipeline to a record."""

    record: Any = Field(..., description="The record to transform")

    # Option A: reference a saved pipeline
    pipeline_key: Optional[str] = Field(default=None)

    # Option B: inline steps
    steps: Optional[list[TransformationStep]] = Field(default=None)

    strict: Optional[bool] = Field(
        default=None,
        description="Raise on the first failing step (default: server setting)",
    )
    index: Optional[int] = Field(default=None, description="Row index")
    available_fields: list[str] = Field(default_factory=list)


class PipelineApplyResponse(BaseModel):
    record: Any = None
    pipeline_key: Optional[str] = None
    step_count: int = 0
    execution_time_ms: int = 0


# ── Helper ───────────────────────────────────────────────


def _get_or_404(pipeline_key: str) -> PipelineDefinition:
    """Get a pipeline by key or raise 404."""
    registry = get_pipeline_registry()
    pipeline = registry.get(pipeline_key)
    if pipeline is None:
        available = registry.list_keys()
        raise HTTPException(
            status_code=404,
            detail=f"Pipeline '{pipeline_key}' not found. Available: {available}",
        )
    return pipeline


# ── List / detail ────────────────────────────────────────


@router.get("", response_model=list[PipelineSummary])
async def list_pipelines(
    tag: Optional[str] = Query(None, description="Filter by tag"),
):
    """List saved pipelines."""
    return get_pipeline_registry().list_summaries(tag=tag)


# ── Apply ────────────────────────────────────────────────


@router.post("/apply", response_model=PipelineApplyResponse)
async def apply_pipeline(request: PipelineApplyRequest):
    """Apply a saved pipeline or inline steps to a record.

    Failing steps are skipped unless strict mode is on, in which case the
    first failure is returned as 422.
    """
    start_time = time.time()
    strict = config.STRICT_MODE if request.strict is None else request.strict
    pipeline = TransformationPipeline(strict=strict)
    context = TransformContext(
        index=request.index, available_fields=request.available_fields
    )

    if request.pipeline_key:
        definition = _get_or_404(request.pipeline_key)
        steps = definition.steps
    elif request.steps is not None:
        definition = None
        steps = request.steps
    else:
        raise HTTPException(
            status_code=400,
            detail="Provide either pipeline_key or steps",
        )

    try:
        if definition is not None:
            record = pipeline.apply_definition(request.record, definition, context)
        else:
            record = pipeline.apply(request.record, steps, context)
    except TransformationError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": str(e),
                "step_id": e.step_id,
                "transformation_type": e.transformation_type,
            },
        )

    elapsed = int((time.time() - start_time) * 1000)
    return PipelineApplyResponse(
        record=record,
        pipeline_key=request.pipeline_key,
        step_count=len(steps),
        execution_time_ms=elapsed,
    )


@router.post("/reload")
async def reload_pipelines():
    """Force reload pipeline definitions from disk."""
    registry = get_pipeline_registry()
    registry.reload()
    return {"reloaded": True, "count": registry.count()}


@router.get("/{pipeline_key}", response_model=PipelineDefinition)
async def get_pipeline(pipeline_key: str):
    """Get a single pipeline definition."""
    return _get_or_404(pipeline_key)


# ── CRUD ─────────────────────────────────────────────────


@router.post("", response_model=PipelineDefinition, status_code=201)
async def create_pipeline(pipeline: PipelineDefinition):
    """Create a new pipeline definition."""
    registry = get_pipeline_registry()

    if registry.get(pipeline.pipeline_key) is not None:
        raise HTTPException(
            status_code=409,
            detail=f"Pipeline '{pipeline.pipeline_key}' already exists",
        )

    if not registry.save(pipeline.pipeline_key, pipeline):
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save pipeline '{pipeline.pipeline_key}'",
        )

    logger.info(f"Created pipeline: {pipeline.pipeline_key}")
    return pipeline


@router.put("/{pipeline_key}", response_model=PipelineDefinition)
async def update_pipeline(pipeline_key: str, pipeline: PipelineDefinition):
    """Replace an existing pipeline definition."""
    registry = get_pipeline_registry()

    if registry.get(pipeline_key) is None:
        raise HTTPException(
            status_code=404,
            detail=f"Pipeline '{pipeline_key}' not found",
        )

    if pipeline.pipeline_key != pipeline_key:
        raise HTTPException(
            status_code=400,
            detail=f"pipeline_key in body ('{pipeline.pipeline_key}') "
            f"must match URL ('{pipeline_key}')",
        )

    if not registry.save(pipeline_key, pipeline):
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save pipeline '{pipeline_key}'",
        )

    logger.info(f"Updated pipeline: {pipeline_key}")
    return pipeline


@router.delete("/{pipeline_key}")
async def delete_pipeline(pipeline_key: str):
    """Delete a pipeline definition."""
    if not get_pipeline_registry().delete(pipeline_key):
        raise HTTPException(
            status_code=404,
            detail=f"Pipeline '{pipeline_key}' not found",
        )

    logger.info(f"Deleted pipeline: {pipeline_key}")
    return {"deleted": pipeline_key}
