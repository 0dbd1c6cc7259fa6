"""
Slice geometry models.

Trim, gap, layout and custom grid-line parameters for slicing a sheet,
plus the source rectangle computed for each cell.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Tuple

from ..exceptions import InvalidGeometryError

# Practical grid bounds
MAX_GRID_CELLS = 12

# Largest combined trim allowed on one axis
MAX_AXIS_TRIM = 0.9


def _check_fraction(name: str, value: float) -> None:
    if not 0.0 <= value < 1.0:
        raise InvalidGeometryError(
            f"{name} must be a fraction in [0, 1)",
            field_name=name,
            field_value=value,
            expected="0 <= value < 1",
        )


@dataclass(frozen=True)
class TrimConfig:
    """Fractions of the image excluded from slicing on each side."""
    top: float = 0.0
    bottom: float = 0.0
    left: float = 0.0
    right: float = 0.0

    def validate(self) -> "TrimConfig":
        for name in ("top", "bottom", "left", "right"):
            _check_fraction(f"trim.{name}", getattr(self, name))
        if self.top + self.bottom >= MAX_AXIS_TRIM:
            raise InvalidGeometryError(
                "Vertical trim leaves no usable area",
                field_name="trim.top+trim.bottom",
                field_value=self.top + self.bottom,
                expected=f"< {MAX_AXIS_TRIM}",
            )
        if self.left + self.right >= MAX_AXIS_TRIM:
            raise InvalidGeometryError(
                "Horizontal trim leaves no usable area",
                field_name="trim.left+trim.right",
                field_value=self.left + self.right,
                expected=f"< {MAX_AXIS_TRIM}",
            )
        return self

    def region(self, width: int, height: int) -> Tuple[float, float, float, float]:
        """Return the trimmed region as (x, y, width, height) in pixels."""
        x = width * self.left
        y = height * self.top
        w = width * (1 - self.left - self.right)
        h = height * (1 - self.top - self.bottom)
        return (x, y, w, h)

    def to_dict(self) -> dict[str, Any]:
        return {"top": self.top, "bottom": self.bottom, "left": self.left, "right": self.right}


@dataclass(frozen=True)
class GapConfig:
    """Inter-cell spacing as a fraction of the base cell size."""
    x: float = 0.0
    y: float = 0.0

    def validate(self) -> "GapConfig":
        _check_fraction("gap.x", self.x)
        _check_fraction("gap.y", self.y)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class GridLayout:
    """Grid dimensions of a sticker sheet."""
    cols: int
    rows: int

    @property
    def total(self) -> int:
        return self.cols * self.rows

    def validate(self) -> "GridLayout":
        for name, value in (("cols", self.cols), ("rows", self.rows)):
            if value <= 0:
                raise InvalidGeometryError(
                    f"{name} must be positive",
                    field_name=name,
                    field_value=value,
                    expected=">= 1",
                )
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"cols": self.cols, "rows": self.rows}


def _check_lines(name: str, lines: Tuple[float, ...]) -> None:
    previous = 0.0
    for position in lines:
        if not 0.0 < position < 1.0 or position <= previous:
            raise InvalidGeometryError(
                f"{name} must be strictly increasing positions inside (0, 1)",
                field_name=name,
                field_value=list(lines),
            )
        previous = position


@dataclass(frozen=True)
class GridLines:
    """
    Explicit normalized cut positions inside the trimmed region.

    ``col_lines`` holds cols-1 positions and ``row_lines`` rows-1 positions.
    """
    col_lines: Tuple[float, ...] = field(default_factory=tuple)
    row_lines: Tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "col_lines", tuple(float(p) for p in self.col_lines))
        object.__setattr__(self, "row_lines", tuple(float(p) for p in self.row_lines))

    @classmethod
    def uniform(cls, cols: int, rows: int) -> "GridLines":
        """Evenly spaced lines for a cols x rows grid."""
        GridLayout(cols, rows).validate()
        return cls(
            col_lines=tuple(i / cols for i in range(1, cols)),
            row_lines=tuple(i / rows for i in range(1, rows)),
        )

    @property
    def cols(self) -> int:
        return len(self.col_lines) + 1

    @property
    def rows(self) -> int:
        return len(self.row_lines) + 1

    @property
    def layout(self) -> GridLayout:
        return GridLayout(self.cols, self.rows)

    def col_bounds(self) -> List[float]:
        return [0.0, *self.col_lines, 1.0]

    def row_bounds(self) -> List[float]:
        return [0.0, *self.row_lines, 1.0]

    def validate(self) -> "GridLines":
        _check_lines("col_lines", self.col_lines)
        _check_lines("row_lines", self.row_lines)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"col_lines": list(self.col_lines), "row_lines": list(self.row_lines)}


@dataclass(frozen=True)
class CellBox:
    """Fractional source rectangle of one grid cell, in pixels."""
    x: float
    y: float
    width: float
    height: float

    @property
    def box(self) -> Tuple[float, float, float, float]:
        """(left, upper, right, lower) as expected by Pillow."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)
