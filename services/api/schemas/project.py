"""
Pydantic schemas for projects and memberships.
"""
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    """Request to create a project; the caller becomes its project_leader."""
    name: str = Field(..., min_length=1, max_length=200, description="Project name")
    description: Optional[str] = Field(None, max_length=2000)


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    owner_id: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class MemberAdd(BaseModel):
    """Add a user to a project, or change the role of an existing member."""
    user_id: Union[int, str] = Field(..., description="User ID")
    role: str = Field("user", description="project_leader, user, observer, admin or superuser")


class MembershipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    project_id: int
    role: str
    created_at: Optional[datetime] = None
