"""Shared utilities."""

from .metrics import compute_psnr_ssim, StageTimer
from .test_images import (
    generate_checkerboard,
    generate_stripes,
    generate_gradient,
    generate_shapes,
    add_gaussian_noise,
    generate_demo_image,
)
from .image_io import load_image, save_image
from .fixtures import read_float_file, write_float_file, compare_float_buffers

__all__ = [
    'compute_psnr_ssim',
    'StageTimer',
    'generate_checkerboard',
    'generate_stripes',
    'generate_gradient',
    'generate_shapes',
    'add_gaussian_noise',
    'generate_demo_image',
    'load_image',
    'save_image',
    'read_float_file',
    'write_float_file',
    'compare_float_buffers',
]
