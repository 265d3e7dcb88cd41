"""API routes for the transformation catalog and single-value execution."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from fieldmap.transformations.catalog import (
    get_available_transformations,
    list_catalog,
)
from fieldmap.transformations.context import TransformContext
from fieldmap.transformations.executor import get_transformation_executor
from fieldmap.transformations.schemas import TransformationResult, TransformDefinition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transformations", tags=["transformations"])


# ── Request schemas ──────────────────────────────────────


class TransformationExecuteRequest(BaseModel):
    """Request to apply one transformation to one value."""

    value: Any = Field(default=None, description="The value to transform")
    type: str = Field(..., description="TransformKind identifier")
    config: dict[str, Any] = Field(default_factory=dict)
    fields: Optional[dict[str, Any]] = Field(
        default=None,
        description="Field values for {{placeholder}} resolution",
    )
    index: Optional[int] = Field(default=None, description="Row index")
    available_fields: list[str] = Field(default_factory=list)


# ── Catalog ──────────────────────────────────────────────


@router.get("")
async def list_transformations():
    """The full catalog keyed by source kind then target kind."""
    return list_catalog()


@router.get("/kinds", response_model=list[str])
async def list_kinds():
    """Every transformation identifier the executor accepts."""
    return get_transformation_executor().supported_kinds()


@router.get("/available", response_model=list[TransformDefinition])
async def available_transformations(
    source: str = Query(..., description="Source value kind"),
    target: str = Query(..., description="Target value kind"),
):
    """Transformations offered for a source/target kind pair."""
    return get_available_transformations(source, target)


# ── Execute ──────────────────────────────────────────────


@router.post("/execute", response_model=TransformationResult)
async def execute_transformation(request: TransformationExecuteRequest):
    """Apply a transformation to a value.

    Failures are reported in the body (success=false) with the original
    value as data, never as an HTTP error.
    """
    executor = get_transformation_executor()
    context = TransformContext(
        fields=request.fields,
        index=request.index,
        available_fields=request.available_fields,
    )
    result = executor.execute(
        request.type, request.value, request.config, context, strict=False
    )

    if not result.success:
        logger.warning(
            f"Transformation failed: {result.error} "
            f"(type={result.transformation_type})"
        )

    return result
