"""
Density Field Viewer

Grayscale full-screen visualization of a 2D density field, drawn as a
software render pass with a linear or gamma 2.2 tone response.
"""

from .colorize import DisplayMode
from .pipeline import DensityPass, DensityPipeline, BindGroup, BindingError, build_pass
from .texture import DensityTexture, Sampler
