"""
Density Visualization Pass

Draws a density texture over the whole target as grayscale:

    vertex stage (quad) -> rasterizer -> sampler -> colorizer -> color target

Resources are bound explicitly: group 0 holds the texture at slot 0 and
the sampler at slot 1. The tone response is fixed when the pass is built;
switching it means building a new pass.

DensityPipeline wraps a pass with its own texture and sampler so a host
loop can push simulation fields in and pull frames out:

    pipe = DensityPipeline(DisplayConfig(display_mode="gamma"))
    pipe.update(field)
    frame = pipe.render()            # (H, W, 3) float32
    video = pipe(density=field)      # {"video": (1, H, W, 3) tensor}
"""

import enum
from collections import namedtuple

import numpy as np
import torch

from .colorize import DisplayMode, get_colorizer, build_lut, gray_to_rgba
from .quad import QUAD_VERTICES, QUAD_INDICES, vertex_stage, quad_triangles
from .raster import raster_interpolants
from .texture import DensityTexture, Sampler, FilterMode, TextureFormat


TEXTURE_SLOT = 0
SAMPLER_SLOT = 1


class BindingError(RuntimeError):
    """Pass resources are missing or incompatible."""


class TargetFormat(str, enum.Enum):
    rgba32float = "rgba32float"
    rgba8unorm = "rgba8unorm"


BindGroup = namedtuple("BindGroup", ["texture", "sampler"])


def validate_bind_group(bind_group):
    """Check group 0 before any draw is issued. Raises BindingError."""
    if bind_group is None:
        raise BindingError("No bind group supplied for group 0")
    texture, sampler = bind_group
    if not isinstance(texture, DensityTexture):
        raise BindingError(f"Slot {TEXTURE_SLOT}: expected a DensityTexture, got {type(texture).__name__}")
    if not isinstance(sampler, Sampler):
        raise BindingError(f"Slot {SAMPLER_SLOT}: expected a Sampler, got {type(sampler).__name__}")
    if texture.channels < 1:
        raise BindingError(f"Slot {TEXTURE_SLOT}: texture has no readable channel")
    if FilterMode.linear in sampler.filters and not texture.format.filterable:
        raise BindingError(
            f"Texture format {texture.format.value} is not filterable but the "
            f"sampler uses linear filtering ({sampler!r})"
        )


def _to_unorm8(rgba):
    """Store float color in an 8-bit target: NaN -> 0, saturate, round."""
    out = np.nan_to_num(rgba, nan=0.0, posinf=1.0, neginf=0.0)
    np.clip(out, 0.0, 1.0, out=out)
    np.multiply(out, 255.0, out=out)
    np.rint(out, out=out)
    return out.astype(np.uint8)


class DensityPass:
    """Full-screen quad pass painting a density texture in grayscale."""

    def __init__(self, bind_group, display_mode, width, height,
                 target_format=TargetFormat.rgba32float):
        validate_bind_group(bind_group)
        self.bind_group = BindGroup(*bind_group)
        self.display_mode = DisplayMode(display_mode)
        self.target_format = TargetFormat(target_format)

        # Pipeline build: pick the colorizer once, never per pixel
        self.colorize = get_colorizer(self.display_mode)
        self._lut = None
        if self.bind_group.texture.format is TextureFormat.r8unorm:
            self._lut = build_lut(self.display_mode)

        self.vertices = QUAD_VERTICES
        self.indices = QUAD_INDICES
        self.width = 0
        self.height = 0
        self.resize(width, height)

    @property
    def texture(self):
        return self.bind_group.texture

    @property
    def sampler(self):
        return self.bind_group.sampler

    def resize(self, width, height):
        """Reallocate the color target and re-rasterize the quad."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Target size must be positive, got {width}x{height}")
        self.width = width
        self.height = height

        dtype = np.uint8 if self.target_format is TargetFormat.rgba8unorm else np.float32
        self.target = np.zeros((height, width, 4), dtype=dtype)
        self._rgba = np.zeros((height, width, 4), dtype=np.float32)

        # The quad and target size fix the interpolants, so rasterize once
        interpolants = vertex_stage(self.vertices)
        positions, tex_coords = quad_triangles(interpolants, self.indices)
        self.tex_coords, self.coverage = raster_interpolants(
            width, height, positions, tex_coords
        )

    def _shade(self, filter_mode):
        texture, sampler = self.bind_group
        if self._lut is not None and filter_mode is FilterMode.nearest:
            # Every nearest sample of an 8-bit texture is k/255: one lookup
            row, col = sampler.nearest_indices(texture, self.tex_coords)
            return self._lut[texture.codes[row, col, 0]]
        density = sampler.sample(texture, self.tex_coords, filter_mode)[..., 0]
        return self.colorize(density)

    def draw(self):
        """Run the pass and return the color target (H, W, 4).

        Every pixel is cleared then written exactly once. The texture lock
        is held for the whole read so uploads cannot interleave.
        """
        texture, sampler = self.bind_group
        filter_mode = sampler.select_filter(texture, self.width, self.height)

        with texture.lock, np.errstate(invalid="ignore", over="ignore"):
            value = self._shade(filter_mode)
        gray_to_rgba(value, out=self._rgba)
        # Load op is clear-to-zero; only uncovered pixels keep it
        self._rgba[self.coverage == 0] = 0.0

        if self.target_format is TargetFormat.rgba8unorm:
            self.target[:] = _to_unorm8(self._rgba)
        else:
            self.target[:] = self._rgba
        return self.target


def build_pass(texture, sampler, display_mode="linear", width=800, height=800,
               target_format=TargetFormat.rgba32float):
    """Bind texture and sampler into group 0 and build a pass for one mode."""
    return DensityPass(BindGroup(texture, sampler), display_mode, width, height,
                       target_format=target_format)


class DensityPipeline:
    """Host-side frame source: simulation field in, grayscale frame out."""

    def __init__(self, config=None, **overrides):
        from .config import DisplayConfig

        if config is None:
            config = DisplayConfig(**overrides)
        elif overrides:
            config = config.model_validate({**config.model_dump(), **overrides})
        self.config = config

        self.texture = DensityTexture(config.resolution, config.resolution,
                                      format=config.texture_format)
        self.sampler = Sampler(mag_filter=config.mag_filter,
                               min_filter=config.min_filter,
                               address_mode=config.address_mode)
        self.pass_ = self._build(config.display_mode)

    def _build(self, display_mode):
        return build_pass(self.texture, self.sampler, display_mode,
                          width=self.config.window_width,
                          height=self.config.window_height,
                          target_format=self.config.target_format)

    @property
    def display_mode(self):
        return self.pass_.display_mode

    def set_display_mode(self, display_mode):
        """Rebuild the pass with another tone response."""
        display_mode = DisplayMode(display_mode)
        if display_mode is not self.pass_.display_mode:
            self.pass_ = self._build(display_mode)
            self.config = self.config.model_copy(update={"display_mode": display_mode})
        return self.pass_

    def resize(self, width, height):
        self.pass_.resize(width, height)
        self.config = self.config.model_copy(
            update={"window_width": width, "window_height": height}
        )

    def update(self, field):
        """Upload a simulation field indexed field[x, y]."""
        self.texture.write(field)

    def render(self):
        """Draw and return the (H, W, 3) frame as float32 in [0, 1]."""
        target = self.pass_.draw()
        rgb = target[..., :3]
        if target.dtype == np.uint8:
            return rgb.astype(np.float32) / 255.0
        return rgb.copy()

    def __call__(self, density=None, **kwargs):
        """Optionally upload `density`, then render.

        Returns:
            {"video": tensor} where tensor is (1, H, W, 3) float32
        """
        display_mode = kwargs.get("display_mode", None)
        if display_mode is not None:
            self.set_display_mode(getattr(display_mode, "value", display_mode))
        if density is not None:
            self.update(density)
        frame_np = self.render()
        tensor = torch.from_numpy(frame_np).unsqueeze(0)
        return {"video": tensor}
