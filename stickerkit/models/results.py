"""
Result models returned by the detection and editing operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .geometry import GridLayout


@dataclass
class OperationResult:
    """
    Outcome of a removal or edit tool.

    ``success`` is False only for recoverable failures (insufficient
    background samples, eyedropper on a transparent pixel). No-op calls
    are successful with ``changed`` False.
    """
    success: bool
    message: str = ""
    changed: bool = False
    color: Optional[Tuple[int, int, int]] = None

    @classmethod
    def ok(cls, message: str = "", color: Optional[Tuple[int, int, int]] = None) -> "OperationResult":
        return cls(success=True, message=message, changed=True, color=color)

    @classmethod
    def noop(cls, message: str) -> "OperationResult":
        return cls(success=True, message=message, changed=False)

    @classmethod
    def failed(cls, message: str) -> "OperationResult":
        return cls(success=False, message=message, changed=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "changed": self.changed,
            "color": list(self.color) if self.color else None,
        }


@dataclass(frozen=True)
class LayoutCandidate:
    """A (cols, rows) guess scored against the image aspect ratio."""
    cols: int
    rows: int
    total: int
    error: float

    @property
    def layout(self) -> GridLayout:
        return GridLayout(self.cols, self.rows)


@dataclass
class AxisProfiles:
    """Per-row and per-column signals used by pixel layout analysis."""
    row_brightness: List[float] = field(default_factory=list)
    col_brightness: List[float] = field(default_factory=list)
    row_variation: List[float] = field(default_factory=list)
    col_variation: List[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_brightness": [round(v, 4) for v in self.row_brightness],
            "col_brightness": [round(v, 4) for v in self.col_brightness],
            "row_variation": [round(v, 4) for v in self.row_variation],
            "col_variation": [round(v, 4) for v in self.col_variation],
        }


@dataclass
class LayoutDetection:
    """Detected grid layout with a confidence in [0, 1]."""
    layout: GridLayout
    confidence: float
    method: str  # "pixels" or "aspect"
    row_period: int = 0
    col_period: int = 0
    profiles: Optional[AxisProfiles] = None

    @property
    def cols(self) -> int:
        return self.layout.cols

    @property
    def rows(self) -> int:
        return self.layout.rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "cols": self.cols,
            "rows": self.rows,
            "confidence": self.confidence,
            "method": self.method,
            "row_period": self.row_period,
            "col_period": self.col_period,
        }
