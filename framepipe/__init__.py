"""Composable frame-processing pipelines: pins, components, scaffolding, colour
conversion, cubemap-to-panorama conversion, SEI embedding and recording."""

__version__ = "0.1.0"