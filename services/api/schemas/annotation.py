"""
Pydantic schemas for annotations.

Geometry is only type-checked here; range checks (positive size, page within
the document) happen in the ledger so they come back as INVALID_RECT.
"""
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models import Rect


class RectIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    x: float
    y: float
    width: float
    height: float
    page_number: int = Field(..., alias="pageNumber", description="1-based page number")

    def to_rect(self) -> Rect:
        return Rect(
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            page_number=self.page_number,
        )


class AnnotationCreate(BaseModel):
    rect: RectIn
    color: Optional[str] = Field(
        None,
        pattern=r"^#[0-9A-Fa-f]{6}$",
        description="Hex color; defaults to the new_comment color",
    )
    comment: Optional[str] = Field(None, max_length=5000)


class StatusUpdate(BaseModel):
    status: str = Field(..., description="One of the six annotation statuses")


class AssigneeUpdate(BaseModel):
    """Null clears the assignment."""
    assignee_id: Optional[Union[int, str]] = None


class AnnotationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    pdf_version_id: int
    rect: RectIn
    color: str
    status: str
    comment: Optional[str] = None
    created_by: int
    created_at: Optional[datetime] = None
    assigned_to: Optional[int] = None
    status_updated_by: Optional[int] = None
    status_updated_at: Optional[datetime] = None
