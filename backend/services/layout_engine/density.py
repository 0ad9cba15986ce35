"""Coarse occupancy grid used to steer placements away from crowded areas."""

import math

import numpy as np

from .geometry_utils import Box, Canvas, Square


class DensityMap:
    """
    ``rows x cols`` grid of coverage fractions in [0, 1] over the canvas.

    One instance lives for exactly one layout pass.
    """

    def __init__(self, canvas: Canvas, cols: int = 4, rows: int = 3):
        self.cols = cols
        self.rows = rows
        self.cell_width = canvas.width / cols
        self.cell_height = canvas.height / rows
        self.values = np.zeros((rows, cols), dtype=float)

    @classmethod
    def create(cls, canvas: Canvas, cols: int = 4, rows: int = 3) -> "DensityMap":
        return cls(canvas, cols=cols, rows=rows)

    def _cell_span(self, x: float, y: float, width: float, height: float):
        start_col = max(0, math.floor(x / self.cell_width))
        end_col = min(self.cols - 1, math.floor((x + width) / self.cell_width))
        start_row = max(0, math.floor(y / self.cell_height))
        end_row = min(self.rows - 1, math.floor((y + height) / self.cell_height))
        return start_col, end_col, start_row, end_row

    def sample(self, shape: Box) -> float:
        """Average density of the cells touched by *shape*."""
        rect = shape.rect if isinstance(shape, Square) else shape
        c0, c1, r0, r1 = self._cell_span(rect.x, rect.y, rect.width, rect.height)
        if c1 < c0 or r1 < r0:
            return 0.0
        cells = self.values[r0:r1 + 1, c0:c1 + 1]
        return min(1.0, float(cells.mean()))

    def apply(self, square: Square) -> None:
        """Accumulate the coverage of a placed item (additive, saturating at 1)."""
        cell_area = self.cell_width * self.cell_height
        c0, c1, r0, r1 = self._cell_span(square.x, square.y, square.size, square.size)
        for row in range(r0, r1 + 1):
            for col in range(c0, c1 + 1):
                cell_x1 = col * self.cell_width
                cell_y1 = row * self.cell_height
                ow = max(0.0, min(square.x + square.size, cell_x1 + self.cell_width) - max(square.x, cell_x1))
                oh = max(0.0, min(square.y + square.size, cell_y1 + self.cell_height) - max(square.y, cell_y1))
                overlap = ow * oh
                if overlap <= 0:
                    continue
                self.values[row, col] = min(1.0, self.values[row, col] + overlap / cell_area)

    def __repr__(self) -> str:
        return f"DensityMap({self.cols}x{self.rows}, mean={float(self.values.mean()):.3f})"
