"""
Student progress schemas (durable mirror of a student's completed-id set).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class ProgressResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completed_ids: list[str] = Field(alias="completedIds")


class SaveProgressRequest(BaseModel):
    """Full replacement of the stored set; ``completedIds`` is type-checked by the service."""
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(default=None, alias="studentId")
    completed_ids: Any = Field(default=None, alias="completedIds")


class SaveProgressResponse(BaseModel):
    success: bool
