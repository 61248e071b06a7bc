"""
Layout models for rendering time intervals without visual collision.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TimeInterval(BaseModel):
    """Ephemeral interval derived from entries for rendering."""

    id: str
    start: int
    end: int
    label: Optional[str] = None

    @property
    def duration(self) -> int:
        return self.end - self.start


class RectGeometry(BaseModel):
    """Column placement on a vertical timeline."""

    offset: float
    length: float
    lateral_position: float = Field(..., ge=0, le=1)
    lateral_width: float = Field(..., ge=0, le=1)
    column: int = Field(..., ge=0)
    total_columns: int = Field(..., ge=1)


class RadialBand(BaseModel):
    """One ring of a radial clock face."""

    inner_radius: float
    outer_radius: float


class RadialGeometry(BaseModel):
    """Ring placement on a radial clock face."""

    ring_index: int = Field(..., ge=0)
    inner_radius: float
    outer_radius: float
