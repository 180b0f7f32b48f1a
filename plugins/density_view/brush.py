"""
Density Canvas and Brush

Stand-in density source for the viewer: a square grid the user paints
into with the mouse. Cells are indexed field[x, y] with y up, matching
the texture upload. Indices wrap around the grid edges.

Coordinate helpers convert between window pixels, normalized [-1, 1]
space and grid cells.
"""

import math
import numpy as np


def window_to_normalized(x, y, window_size):
    """Window pixel (y down) to normalized position (y up)."""
    if np.isscalar(window_size):
        w = h = window_size
    else:
        w, h = window_size
    return np.array([x / w * 2.0 - 1.0, -y / h * 2.0 + 1.0], dtype=np.float32)


def cell_to_normalized(i, j, resolution):
    return np.array([i, j], dtype=np.float32) / resolution * 2.0 - 1.0


def normalized_to_cell(position, resolution):
    """Normalized position to the containing cell (truncates toward zero)."""
    return (int((position[0] / 2.0 + 0.5) * resolution),
            int((position[1] / 2.0 + 0.5) * resolution))


class DensityCanvas:
    """Paintable density field."""

    def __init__(self, resolution=200):
        self.resolution = resolution
        self.field = np.zeros((resolution, resolution), dtype=np.float32)
        self.strokes = 0

    def paint(self, position, dt, radius=0.1, density=1.0):
        """Add density * dt to every cell within `radius` of `position`.

        Args:
            position: Normalized (x, y) brush centre
            dt: Seconds since last frame
            radius: Brush radius in normalized units
            density: Density added per second

        Returns:
            Number of cells touched
        """
        res = self.resolution
        cell_radius = math.ceil(radius * res / 2.0)
        cx, cy = normalized_to_cell(position, res)

        offsets = np.arange(-cell_radius, cell_radius + 1)
        I = (cx + offsets)[:, np.newaxis]
        J = (cy + offsets)[np.newaxis, :]
        nx = I / res * 2.0 - 1.0
        ny = J / res * 2.0 - 1.0
        dist_sq = (nx - position[0]) ** 2 + (ny - position[1]) ** 2
        hit = dist_sq < radius * radius

        ii = np.broadcast_to(I, hit.shape)[hit] % res
        jj = np.broadcast_to(J, hit.shape)[hit] % res
        # add.at so wrapped duplicates accumulate
        np.add.at(self.field, (ii, jj), np.float32(density * dt))
        self.strokes += 1
        return int(hit.sum())

    def clear(self):
        self.field[:] = 0
        self.strokes = 0

    @property
    def stats(self):
        return {
            "strokes": self.strokes,
            "mass": float(self.field.sum()),
            "max": float(self.field.max()),
            "covered_pct": float((self.field > 0.01).sum()) / self.field.size * 100,
        }
