"""
Density Colorizers

Map one scalar density sample to one grayscale intensity. Two tone
responses exist, picked once when a pass is built:

    linear  v = clamp(d, 0, 1)
    gamma   v = max(d, 0) ** 2.2

The gamma path floors negative density at 0 before the power so it never
produces NaN from a negative base. It has no upper clamp: d > 1 gives
v > 1, and +inf stays +inf. NaN input stays NaN in both paths.
"""

import enum

import numpy as np


DISPLAY_GAMMA = 2.2


class DisplayMode(str, enum.Enum):
    """Tone response of the density pass."""
    linear = "linear"
    gamma = "gamma"


def colorize_linear(density):
    """Saturate density into [0, 1]."""
    with np.errstate(invalid="ignore"):
        return np.clip(density, np.float32(0.0), np.float32(1.0))


def colorize_gamma(density):
    """Power-law 2.2 response. Negative density floors to 0 first."""
    with np.errstate(invalid="ignore", over="ignore"):
        value = np.maximum(density, np.float32(0.0))
        return np.power(value, np.float32(DISPLAY_GAMMA))


# Registry of all tone responses
COLORIZERS = {
    DisplayMode.linear: colorize_linear,
    DisplayMode.gamma: colorize_gamma,
}

DISPLAY_MODE_ORDER = list(COLORIZERS.keys())


def get_colorizer(mode):
    """Look up the colorizer for a DisplayMode or its name."""
    try:
        return COLORIZERS[DisplayMode(mode)]
    except ValueError:
        names = ", ".join(m.value for m in DISPLAY_MODE_ORDER)
        raise ValueError(f"Unknown display mode {mode!r} (expected one of: {names})") from None


def build_lut(mode):
    """256-entry intensity LUT for 8-bit unorm density codes.

    Entry k holds the colorizer applied to k / 255 computed in float32, so
    it matches the direct path bit for bit.
    """
    codes = np.arange(256).astype(np.float32) / np.float32(255.0)
    lut = get_colorizer(mode)(codes).astype(np.float32)
    lut.setflags(write=False)
    return lut


def gray_to_rgba(value, out=None):
    """Expand an (H, W) intensity into (H, W, 4) grayscale with alpha 1."""
    if out is None:
        out = np.empty(value.shape + (4,), dtype=np.float32)
    out[..., 0] = value
    out[..., 1] = value
    out[..., 2] = value
    out[..., 3] = 1.0
    return out
