"""
Pydantic schemas for project endpoints.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from tracker.models.project import ProjectStatus


class ProjectCreate(BaseModel):
    """
    Project creation request schema.

    WHY: Projects are created in the caller's organization; there is no
    org_id field to spoof.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, max_length=5000, description="Project description")


class ProjectResponse(BaseModel):
    """Project data for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    created_by_user_id: int
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    """Paginated project list response schema."""

    items: List[ProjectResponse] = Field(..., description="List of projects")
    total: int = Field(..., description="Total number of projects")
    skip: int = Field(..., description="Number of items skipped (offset)")
    limit: int = Field(..., description="Maximum items per page")
