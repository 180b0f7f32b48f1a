"""
Full-Screen Quad

Fixed four-vertex buffer covering clip space [-1, 1]^2 and the vertex
stage that turns it into rasterizer interpolants:

    clip      = (x, y, 0, 1)
    tex_coord = position * 0.5 + 0.5

The map is affine, so corners land exactly on texture corners:
(-1,-1) -> (0,0), (1,-1) -> (1,0), (-1,1) -> (0,1), (1,1) -> (1,1).
"""

from collections import namedtuple

import numpy as np


# Triangle strip order. Uploaded once, reused every frame.
QUAD_VERTICES = np.array([
    [-1.0, -1.0],
    [1.0, -1.0],
    [-1.0, 1.0],
    [1.0, 1.0],
], dtype=np.float32)
QUAD_VERTICES.setflags(write=False)

# Same quad as a triangle list (both triangles counter-clockwise)
QUAD_INDICES = np.array([
    [0, 1, 2],
    [2, 1, 3],
], dtype=np.intp)
QUAD_INDICES.setflags(write=False)


Interpolants = namedtuple("Interpolants", ["clip_position", "tex_coord"])


def vertex_stage(positions=QUAD_VERTICES):
    """Run the vertex routine over every vertex at once.

    Args:
        positions: (N, 2) array of NDC positions

    Returns:
        Interpolants with clip_position (N, 4) and tex_coord (N, 2), float32
    """
    positions = np.asarray(positions, dtype=np.float32)
    n = positions.shape[0]

    clip = np.zeros((n, 4), dtype=np.float32)
    clip[:, :2] = positions
    clip[:, 3] = 1.0

    tex_coord = positions * np.float32(0.5) + np.float32(0.5)
    return Interpolants(clip, tex_coord)


def strip_to_triangles(count):
    """Index list for a triangle strip of `count` vertices.

    Odd triangles swap their first two vertices so every triangle keeps
    the strip's winding.
    """
    tris = []
    for i in range(count - 2):
        if i % 2 == 0:
            tris.append((i, i + 1, i + 2))
        else:
            tris.append((i + 1, i, i + 2))
    return np.array(tris, dtype=np.intp).reshape(-1, 3)


def quad_triangles(interpolants=None, indices=QUAD_INDICES):
    """Gather per-triangle clip positions and texture coordinates.

    Returns:
        (positions, tex_coords): (T, 3, 2) NDC xy and (T, 3, 2) uv
    """
    if interpolants is None:
        interpolants = vertex_stage()
    positions = interpolants.clip_position[:, :2][indices]
    tex_coords = interpolants.tex_coord[indices]
    return positions, tex_coords
