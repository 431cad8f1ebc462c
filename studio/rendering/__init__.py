"""Rendering module for certificate pixels.

This module handles all drawing:
- Layered composition of a template (background, logo, text, name)
- Font resolution for CSS-style family names
- Image loading for data URIs, URLs and files
- Surfaces that discard stale draws

This separates presentation concerns from the template store and services.
"""

from rendering.certificates import (
    LayerDecodeError,
    RenderLayer,
    compose,
    new_surface,
    render,
)
from rendering.images import ImageDecodeError, ImageLoader, to_data_uri
from rendering.surface import Surface

__all__ = [
    "ImageDecodeError",
    "ImageLoader",
    "LayerDecodeError",
    "RenderLayer",
    "Surface",
    "compose",
    "new_surface",
    "render",
    "to_data_uri",
]
