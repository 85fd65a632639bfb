"""
Progress routes: read and replace the durable copy of a student's completed ids.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DBSession

from api.config import get_db
from api.schemas.progress_schemas import ProgressResponse, SaveProgressRequest, SaveProgressResponse
from api.services.progress_service import ProgressService

progress_routes = APIRouter()


@progress_routes.get("/progress/{bot_id}", response_model=ProgressResponse)
async def get_progress(
    bot_id: str,
    student_id: Optional[str] = Query(default=None, alias="studentId"),
    db: DBSession = Depends(get_db),
) -> ProgressResponse:
    return ProgressResponse(completed_ids=ProgressService(db).get_completed_ids(bot_id, student_id))


@progress_routes.post("/progress/{bot_id}", response_model=SaveProgressResponse)
async def save_progress(
    bot_id: str,
    req: SaveProgressRequest,
    db: DBSession = Depends(get_db),
) -> SaveProgressResponse:
    """Replace the stored set with the one sent (last writer wins)."""
    ProgressService(db).save_completed_ids(bot_id, req.student_id, req.completed_ids)
    return SaveProgressResponse(success=True)
