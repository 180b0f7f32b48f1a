"""
Software Rasterizer

Turns vertex-stage output into one interpolant per covered pixel.

Pixel (col, row) is sampled at its centre. Row 0 is the top of the target
(clip y = +1). Coverage uses edge functions with a top-left fill rule so
pixels on an edge shared by two triangles are owned by exactly one of them.
"""

import numpy as np


def pixel_centers(width, height):
    """Framebuffer-space pixel centres as (H, 1) y and (1, W) x grids."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")
    px = np.arange(width, dtype=np.float64)[np.newaxis, :] + 0.5
    py = np.arange(height, dtype=np.float64)[:, np.newaxis] + 0.5
    return py, px


def ndc_to_framebuffer(positions, width, height):
    """Map NDC xy to framebuffer xy (origin top-left, y down)."""
    positions = np.asarray(positions, dtype=np.float64)
    fb = np.empty_like(positions)
    fb[..., 0] = (positions[..., 0] + 1.0) * 0.5 * width
    fb[..., 1] = (1.0 - positions[..., 1]) * 0.5 * height
    return fb


def _edge(a, b, py, px):
    return (b[0] - a[0]) * (py - a[1]) - (b[1] - a[1]) * (px - a[0])


def _is_top_left(a, b):
    # Positive-area orientation in y-down space: top edges run +x, left edges run -y
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return dy < 0 or (dy == 0 and dx > 0)


def raster_interpolants(width, height, positions, attributes):
    """Rasterize triangles and interpolate a per-vertex attribute.

    Args:
        width, height: Target size in pixels
        positions: (T, 3, 2) NDC triangle vertices
        attributes: (T, 3, K) per-vertex attribute (texture coordinates)

    Returns:
        (values, coverage): (H, W, K) float32 interpolated attribute and
        (H, W) int32 number of triangles that covered each pixel
    """
    py, px = pixel_centers(width, height)
    fb = ndc_to_framebuffer(positions, width, height)
    attributes = np.asarray(attributes, dtype=np.float64)

    k = attributes.shape[-1]
    values = np.zeros((height, width, k), dtype=np.float64)
    coverage = np.zeros((height, width), dtype=np.int32)

    for tri, attr in zip(fb, attributes):
        v0, v1, v2 = tri
        area = _edge(v0, v1, v2[1], v2[0])
        if area == 0:
            continue  # degenerate
        if area < 0:
            v1, v2 = v2, v1
            attr = attr[[0, 2, 1]]
            area = -area

        w0 = _edge(v1, v2, py, px)
        w1 = _edge(v2, v0, py, px)
        w2 = _edge(v0, v1, py, px)

        inside = np.ones((height, width), dtype=bool)
        for w, (a, b) in ((w0, (v1, v2)), (w1, (v2, v0)), (w2, (v0, v1))):
            if _is_top_left(a, b):
                inside &= w >= 0
            else:
                inside &= w > 0

        if not inside.any():
            continue

        l0 = w0 / area
        l1 = w1 / area
        l2 = w2 / area
        interp = (l0[..., np.newaxis] * attr[0]
                  + l1[..., np.newaxis] * attr[1]
                  + l2[..., np.newaxis] * attr[2])
        values[inside] = interp[inside]
        coverage += inside

    return values.astype(np.float32), coverage


def full_screen_coords(width, height):
    """Closed-form texture coordinates of a full-screen quad (reference)."""
    py, px = pixel_centers(width, height)
    coords = np.empty((height, width, 2), dtype=np.float32)
    coords[..., 0] = px / width
    coords[..., 1] = 1.0 - py / height
    return coords
