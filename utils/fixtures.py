"""Plain-text float vectors used as regression fixtures.

Format: whitespace-separated floating-point values, no header, one vector
per file. The writer emits one value per line with 10 decimals.
"""

from pathlib import Path
from typing import Union

import numpy as np

PathLike = Union[str, Path]

COMPARE_TOLERANCE = 0.001


def read_float_file(path: PathLike) -> np.ndarray:
    """Read every float in the file into a flat float32 array."""
    text = Path(path).read_text()
    return np.array(text.split(), dtype=np.float32)


def write_float_file(path: PathLike, data: np.ndarray) -> None:
    np.savetxt(path, np.asarray(data, dtype=np.float32).ravel(), fmt='%.10f')


def compare_float_buffers(a: np.ndarray, b: np.ndarray, tol: float = COMPARE_TOLERANCE) -> bool:
    """True when both buffers have the same length and differ by at most ``tol`` everywhere."""
    a = np.asarray(a, dtype=np.float32).ravel()
    b = np.asarray(b, dtype=np.float32).ravel()
    if a.size != b.size:
        return False
    return bool(np.all(np.abs(a - b) <= tol))
