"""
Viewer Configuration

All host-side options in one validated model. The display mode is the
only option the pass itself recognizes; the rest configure the texture,
sampler, target and the interactive brush.
"""

from pydantic import BaseModel, Field, model_validator

from .colorize import DisplayMode
from .pipeline import TargetFormat
from .texture import TextureFormat, FilterMode, AddressMode


WINDOW_SIZE = 800
RESOLUTION = 200
BRUSH_RADIUS = 0.1
BRUSH_DENSITY = 1.0


class DisplayConfig(BaseModel):
    display_mode: DisplayMode = Field(
        default=DisplayMode.linear,
        description="Tone response: linear clamp or gamma 2.2",
    )
    # Load-time
    resolution: int = Field(
        default=RESOLUTION, ge=2, le=4096,
        description="Density grid / texture size (square)",
    )
    window_width: int = Field(default=WINDOW_SIZE, ge=1, le=8192)
    window_height: int = Field(default=WINDOW_SIZE, ge=1, le=8192)
    texture_format: TextureFormat = Field(default=TextureFormat.r8unorm)
    target_format: TargetFormat = Field(default=TargetFormat.rgba32float)
    # Sampler
    mag_filter: FilterMode = Field(default=FilterMode.linear)
    min_filter: FilterMode = Field(default=FilterMode.nearest)
    address_mode: AddressMode = Field(default=AddressMode.clamp_to_edge)
    # Brush
    brush_radius: float = Field(
        default=BRUSH_RADIUS, gt=0.0, le=2.0,
        description="Brush radius in normalized window units",
    )
    brush_density: float = Field(
        default=BRUSH_DENSITY, ge=0.0, le=100.0,
        description="Density added per second under the brush",
    )

    @model_validator(mode="after")
    def _check_filterable(self):
        if not self.texture_format.filterable and FilterMode.linear in (
                self.mag_filter, self.min_filter):
            raise ValueError(
                f"Texture format {self.texture_format.value} is not filterable; "
                f"use nearest mag_filter and min_filter"
            )
        return self

    def window_size(self):
        return self.window_width, self.window_height
