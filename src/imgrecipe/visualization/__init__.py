"""Visualization of recipe execution."""

from .step_strip import StepPreviewPlotter

__all__ = ['StepPreviewPlotter']
