"""
Document snapshot returned by the document store.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DocumentSnapshot(BaseModel):
    """A stored document: its id, full path and field data."""

    id: str
    path: str
    data: dict[str, Any] = Field(default_factory=dict)

    def get(self, field: str, default: Any = None) -> Any:
        return self.data.get(field, default)
