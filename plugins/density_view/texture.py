"""
Density Texture and Sampler

The texture holds the simulation's density field in texel form; the
sampler decides how texture coordinates become texel values (filtering
and addressing). Both are owned by the host and bound into a pass.

Texel layout: (height, width, channels) float32, row 0 at v = 0. Fields
coming from the simulation are indexed field[x, y], so uploads transpose.
"""

import enum
import threading

import numpy as np
from scipy.ndimage import map_coordinates as _map_coordinates


class TextureFormat(str, enum.Enum):
    """Supported density texture formats."""
    r8unorm = "r8unorm"     # 8-bit normalized, filterable
    r32float = "r32float"   # 32-bit float, not filterable

    @property
    def filterable(self):
        return self is TextureFormat.r8unorm


class FilterMode(str, enum.Enum):
    nearest = "nearest"
    linear = "linear"


class AddressMode(str, enum.Enum):
    clamp_to_edge = "clamp_to_edge"
    repeat = "repeat"
    mirror_repeat = "mirror_repeat"


# Equivalent scipy.ndimage boundary modes for bilinear fetches
_SCIPY_MODES = {
    AddressMode.clamp_to_edge: "nearest",
    AddressMode.repeat: "grid-wrap",
    AddressMode.mirror_repeat: "reflect",
}

_UNORM_SCALE = np.float32(255.0)


class DensityTexture:
    """2D density texture written by the simulation, read by the pass."""

    def __init__(self, width, height, format=TextureFormat.r8unorm, channels=1):
        if width <= 0 or height <= 0:
            raise ValueError(f"Texture size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.format = TextureFormat(format)
        self.channels = channels

        # Serializes uploads against draws reading the texels
        self.lock = threading.Lock()

        self.data = np.zeros((height, width, channels), dtype=np.float32)
        # Raw unorm codes, kept for LUT lookups
        self.codes = None
        if self.format is TextureFormat.r8unorm:
            self.codes = np.zeros((height, width, channels), dtype=np.uint8)

    @classmethod
    def from_field(cls, field, format=TextureFormat.r8unorm):
        """Create a texture sized to a square or rectangular field[x, y]."""
        field = np.asarray(field)
        width, height = field.shape[:2]
        channels = field.shape[2] if field.ndim == 3 else 1
        tex = cls(width, height, format=format, channels=channels)
        tex.write(field)
        return tex

    @property
    def shape(self):
        return self.data.shape

    def write(self, field):
        """Upload a simulation field.

        Args:
            field: (W, H) or (W, H, C) array indexed field[x, y]. Rows of the
                texture are y, so the field is transposed on upload.
        """
        field = np.asarray(field, dtype=np.float32)
        if field.ndim == 2:
            field = field[:, :, np.newaxis]
        if field.shape != (self.width, self.height, self.channels):
            raise ValueError(
                f"Field shape {field.shape} does not match texture "
                f"{self.width}x{self.height}x{self.channels}"
            )
        texels = field.transpose(1, 0, 2)

        with self.lock:
            if self.format is TextureFormat.r8unorm:
                # Saturate, then truncate to the 8-bit code
                scaled = np.nan_to_num(texels, nan=0.0)
                np.clip(scaled, 0.0, 1.0, out=scaled)
                np.multiply(scaled, _UNORM_SCALE, out=scaled)
                self.codes[:] = scaled.astype(np.uint8)
                np.divide(self.codes, _UNORM_SCALE, out=self.data, dtype=np.float32)
            else:
                self.data[:] = texels

    def stats(self):
        x = self.data[..., 0]
        return {
            "size": (self.width, self.height),
            "format": self.format.value,
            "min": float(x.min()),
            "max": float(x.max()),
            "mean": float(x.mean()),
        }


def _address(index, size, mode):
    """Resolve integer texel indices that fall outside [0, size)."""
    if mode is AddressMode.clamp_to_edge:
        return np.clip(index, 0, size - 1)
    if mode is AddressMode.repeat:
        return np.mod(index, size)
    # mirror_repeat: period 2*size, second half reversed
    m = np.mod(index, 2 * size)
    return np.where(m >= size, 2 * size - 1 - m, m)


class Sampler:
    """Filtering and addressing policy for density lookups.

    Defaults match the host renderer: linear magnification, nearest
    minification, edges clamped.
    """

    def __init__(self, mag_filter=FilterMode.linear, min_filter=FilterMode.nearest,
                 address_mode=AddressMode.clamp_to_edge):
        self.mag_filter = FilterMode(mag_filter)
        self.min_filter = FilterMode(min_filter)
        self.address_mode = AddressMode(address_mode)

    def __repr__(self):
        return (f"Sampler(mag={self.mag_filter.value}, min={self.min_filter.value}, "
                f"address={self.address_mode.value})")

    @property
    def filters(self):
        return {self.mag_filter, self.min_filter}

    def select_filter(self, texture, target_width, target_height):
        """Magnify when a texel covers at least one pixel, else minify."""
        ratio = max(texture.width / target_width, texture.height / target_height)
        return self.mag_filter if ratio <= 1.0 else self.min_filter

    def nearest_indices(self, texture, coords):
        """Texel (row, col) picked by nearest filtering for each coordinate."""
        u = coords[..., 0].astype(np.float64)
        v = coords[..., 1].astype(np.float64)
        col = np.floor(u * texture.width).astype(np.intp)
        row = np.floor(v * texture.height).astype(np.intp)
        col = _address(col, texture.width, self.address_mode)
        row = _address(row, texture.height, self.address_mode)
        return row, col

    def sample(self, texture, coords, filter_mode=None):
        """Sample every channel of `texture` at (..., 2) uv coordinates.

        Returns:
            (..., C) float32 texel values
        """
        if filter_mode is None:
            filter_mode = self.mag_filter
        filter_mode = FilterMode(filter_mode)

        if filter_mode is FilterMode.nearest:
            row, col = self.nearest_indices(texture, coords)
            return texture.data[row, col]

        # Bilinear between the four surrounding texel centres
        x = coords[..., 0].astype(np.float64) * texture.width - 0.5
        y = coords[..., 1].astype(np.float64) * texture.height - 0.5
        grid = np.stack([y.ravel(), x.ravel()])
        mode = _SCIPY_MODES[self.address_mode]

        out = np.empty(coords.shape[:-1] + (texture.channels,), dtype=np.float32)
        for c in range(texture.channels):
            vals = _map_coordinates(texture.data[..., c], grid, order=1,
                                    mode=mode, prefilter=False)
            out[..., c] = vals.reshape(coords.shape[:-1])
        return out
