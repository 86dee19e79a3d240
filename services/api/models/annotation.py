# services/api/models/annotation.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


ANNOTATION_STATUSES = (
  "new_comment",
  "action_required",
  "rejected",
  "new_review",
  "other_forum",
  "resolved",
)

DEFAULT_STATUS = "new_comment"

# Display color per status; the annotation color follows its status.
STATUS_COLORS = {
  "new_comment": "#FF69B4",
  "action_required": "#FF0000",
  "rejected": "#808080",
  "new_review": "#FFA500",
  "other_forum": "#4169E1",
  "resolved": "#ADFF2F",
}

# Older clients still send these.
LEGACY_STATUS_ALIASES = {
  "open": "new_comment",
  "reviewing": "new_review",
}


def _safe_float(val: Any) -> float:
  try:
    return float(val)
  except (TypeError, ValueError):
    return 0.0


@dataclass(frozen=True)
class Rect:
  """
  Page-anchored rectangle in PDF page units, origin top-left.
  page_number is 1-based.
  """
  x: float
  y: float
  width: float
  height: float
  page_number: int

  def to_storage(self) -> Dict[str, Any]:
    # Stored JSON keeps the viewer's key names.
    return {
      "x": self.x,
      "y": self.y,
      "width": self.width,
      "height": self.height,
      "pageNumber": self.page_number,
    }

  @classmethod
  def from_storage(cls, data: Dict[str, Any]) -> "Rect":
    page = data.get("pageNumber", data.get("page_number"))
    return cls(
      x=_safe_float(data.get("x")),
      y=_safe_float(data.get("y")),
      width=_safe_float(data.get("width")),
      height=_safe_float(data.get("height")),
      page_number=int(page) if page is not None else 0,
    )


@dataclass
class Annotation:
  """
  Domain model for a spatial comment on one PDF version.

  The version itself is immutable; status (and the color that follows it)
  and the assignee are the only fields that change after creation.
  """
  id: int
  pdf_version_id: int
  rect: Rect
  color: str
  status: str
  created_by: int
  comment: Optional[str] = None
  assigned_to: Optional[int] = None
  created_at: Optional[datetime] = None
  status_updated_by: Optional[int] = None
  status_updated_at: Optional[datetime] = None
