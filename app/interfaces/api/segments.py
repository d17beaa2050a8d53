"""Segment API routes."""

from fastapi import APIRouter, Depends

from app.domain.enums import ResourceStatus
from app.domain.schemas.company import SegmentRead
from app.interfaces.deps import get_segment_repository

router = APIRouter(prefix="/api/v1/segments", tags=["Segments"])


@router.get("", response_model=list[SegmentRead])
def list_segments(segments=Depends(get_segment_repository)):
    found = segments.list({"status": ResourceStatus.AVAILABLE, "excluded": False}, sort={"name": 1})
    return [SegmentRead.model_validate(segment) for segment in found]
