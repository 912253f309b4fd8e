"""GUI widgets for the denoising window."""

from .image_viewer import ImageViewer

__all__ = ['ImageViewer']
