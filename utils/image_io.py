"""Image I/O using OpenCV."""

import cv2
import numpy as np

from models.errors import UnsupportedFormatError


def check_grayscale(image: np.ndarray) -> None:
    """Reject anything but 8-bit single-channel images."""
    if image.dtype != np.uint8:
        raise UnsupportedFormatError(f"Unsupported depth: {image.dtype}, only 8 bits are supported")
    if image.ndim != 2:
        channels = image.shape[2] if image.ndim == 3 else image.ndim
        raise UnsupportedFormatError(f"Unsupported channel count: {channels}, only single channel is supported")


def load_image(path: str, force_gray: bool = True) -> np.ndarray:
    """Load an 8-bit grayscale image.
    
    With ``force_gray`` colour files are converted on load; otherwise they are
    rejected with UnsupportedFormatError, as are 16-bit and float files.
    """
    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Could not load image from {path}")
    if force_gray and img.dtype == np.uint8 and img.ndim == 3:
        if img.shape[2] == 4:
            img = cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
        elif img.shape[2] == 3:
            img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    check_grayscale(img)
    return img


def save_image(image: np.ndarray, path: str) -> None:
    """Save a grayscale image; nothing is written when validation fails."""
    check_grayscale(image)
    if not cv2.imwrite(path, image):
        raise OSError(f"Could not write image to {path}")
