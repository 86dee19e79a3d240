# services/api/core/content_store.py
"""
Local content store for version payloads.

Version rows only hold a `content_ref`; the bytes live under
settings.uploads_dir with a unique prefixed name. Writes go to a temp file
first and are renamed into place, so a half-written upload is never visible.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict
from uuid import uuid4

import pypdfium2 as pdfium

from core.errors import InvalidContent

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_name(filename: str) -> str:
  name = _UNSAFE_CHARS.sub("_", os.path.basename(filename or "")).strip("._")
  return name[:120] or "upload"


def pdf_metadata(data: bytes) -> Dict[str, Any]:
  """
  Open the PDF once to learn what annotations need to be validated against.

  Raises InvalidContent when pdfium cannot parse the bytes.
  """
  try:
    doc = pdfium.PdfDocument(data)
  except pdfium.PdfiumError as e:
    raise InvalidContent(f"Uploaded content is not a readable PDF: {e}") from e
  try:
    page_count = len(doc)
  finally:
    doc.close()
  return {"page_count": page_count, "size_bytes": len(data)}


class LocalContentStore:
  def __init__(self, root: str):
    self.root = Path(root).resolve()
    self.root.mkdir(parents=True, exist_ok=True)

  def save(self, data: bytes, filename: str) -> str:
    """Store bytes and return their content_ref."""
    ref = f"v-{uuid4().hex[:12]}-{_safe_name(filename)}"
    fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".incoming-")
    try:
      with os.fdopen(fd, "wb") as fh:
        fh.write(data)
      os.replace(tmp_path, self.root / ref)
    except OSError:
      if os.path.exists(tmp_path):
        os.unlink(tmp_path)
      raise
    logger.info(f"Stored {len(data)} bytes as {ref}")
    return ref

  def path_for(self, content_ref: str) -> Path:
    path = (self.root / content_ref).resolve()
    if path.parent != self.root:
      raise ValueError(f"content_ref escapes the store: {content_ref!r}")
    return path

  def discard(self, content_ref: str) -> None:
    """Remove content whose version row was never written."""
    try:
      self.path_for(content_ref).unlink()
    except FileNotFoundError:
      pass
    logger.info(f"Discarded orphaned content {content_ref}")

  def exists(self, content_ref: str) -> bool:
    try:
      return self.path_for(content_ref).is_file()
    except ValueError:
      return False
