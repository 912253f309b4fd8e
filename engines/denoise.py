"""Wavelet denoising pipeline: forward Haar, threshold, inverse Haar."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from backends.base import ComputeBackend
from engines.haar import HaarTransform, forward_haar, get_num_levels, inverse_haar
from engines.threshold import apply_threshold, threshold_matrix
from engines.transpose import transpose_host, transpose_matrix
from models.denoise_result import DenoiseResult
from models.errors import DimensionError
from models.threshold_params import ThresholdMode, ThresholdParams
from utils.metrics import StageTimer, compute_psnr_ssim

logger = logging.getLogger('haar_denoise')

# Larger edges still run, with a warning
MAX_EDGE = 1024


def validate_image(image: np.ndarray) -> Tuple[int, int]:
    """Check a single-channel image and return ``(height, width)``.

    Raises DimensionError unless both edges are powers of two.
    """
    pixels = np.asarray(image)
    if pixels.ndim != 2:
        raise DimensionError(f"Expected a single-channel 2D image, got shape {pixels.shape}")
    height, width = pixels.shape
    if not get_num_levels(width)[1]:
        raise DimensionError(f"Image width must be a power of two, got {width}")
    if not get_num_levels(height)[1]:
        raise DimensionError(f"Image height must be a power of two, got {height}")
    if pixels.dtype != np.uint8 and pixels.size and not np.all((pixels >= 0) & (pixels <= 255)):
        raise ValueError("Pixel values must be finite and lie in [0, 255]")
    if width > MAX_EDGE or height > MAX_EDGE:
        logger.warning('Image %dx%d exceeds the recommended maximum edge of %d', width, height, MAX_EDGE)
    return height, width


def normalize(image: np.ndarray) -> np.ndarray:
    """Gray levels to float32 in [0, 1]."""
    return np.asarray(image).astype(np.float32) / np.float32(255.0)


def denormalize(matrix: np.ndarray) -> np.ndarray:
    """Float matrix back to gray levels (scale, clip, truncate)."""
    return np.clip(matrix * np.float32(255.0), 0, 255).astype(np.uint8)


class DenoiseEngine:
    """Runs the denoising pipeline on an injected compute backend.

    Programs belong to the backend and are shared; buffers are allocated per
    call and released on every exit path, so one engine may serve several
    threads at once.
    """

    def __init__(self, backend: ComputeBackend):
        self.backend = backend
        self.transform = HaarTransform(backend)
        logger.info(
            'Denoise engine on %s: %d forward / %d inverse levels per dispatch',
            backend.describe(), self.transform.forward_capacity, self.transform.inverse_capacity
        )

    def clean_noise(
        self,
        image: np.ndarray,
        thresh: float,
        soft: bool = True,
        timer: Optional[StageTimer] = None
    ) -> np.ndarray:
        """Denoise an 8-bit single-channel image with power-of-two edges.

        Returns a uint8 image of the same shape. Raises DimensionError
        before touching the backend when an edge is not a power of two, and
        ComputeError when any backend call fails.
        """
        params = ThresholdParams(threshold=thresh, mode=ThresholdMode.SOFT if soft else ThresholdMode.HARD)
        return self._run(image, params, timer or StageTimer())

    def _run(self, image: np.ndarray, params: ThresholdParams, timer: StageTimer) -> np.ndarray:
        height, width = validate_image(image)
        matrix = normalize(image)
        num_pixels = width * height
        backend = self.backend
        haar = self.transform

        with backend.buffer_scope(num_pixels, num_pixels) as (buf_a, buf_b):
            backend.upload(buf_a, matrix)

            # Rows, then the rows of the transposed matrix (the original columns)
            timer.add('Forward transform on rows', haar.forward(buf_a, buf_b, height, width))
            timer.add('Matrix transpose', transpose_matrix(backend, buf_b, buf_a, width, height))
            timer.add('Forward transform on columns', haar.forward(buf_a, buf_b, width, height))

            timer.add('Matrix threshold', threshold_matrix(backend, buf_b, buf_a, num_pixels, params))

            timer.add('Inverse transform on columns', haar.inverse(buf_a, buf_b, width, height))
            timer.add('Matrix transpose back', transpose_matrix(backend, buf_b, buf_a, height, width))
            timer.add('Inverse transform on rows', haar.inverse(buf_a, buf_b, height, width))

            result = backend.download(buf_b, num_pixels)

        return denormalize(result.reshape(height, width))

    def denoise(
        self,
        image: np.ndarray,
        params: ThresholdParams,
        reference: Optional[np.ndarray] = None
    ) -> DenoiseResult:
        """Run ``clean_noise`` and collect timings and optional quality metrics."""
        timer = StageTimer()
        denoised = self._run(image, params, timer)

        metrics = {'psnr': None, 'ssim': None}
        if reference is not None:
            metrics = compute_psnr_ssim(np.asarray(reference, dtype=np.uint8), denoised)

        height, width = denoised.shape
        return DenoiseResult(
            original_image=np.asarray(image),
            denoised_image=denoised,
            width=width,
            height=height,
            threshold=params.threshold,
            mode=params.mode,
            stage_times_ms=dict(timer.stage_times_ms),
            total_time_ms=timer.total_ms,
            psnr=metrics['psnr'],
            ssim=metrics['ssim'],
            backend_name=self.backend.name
        )

    def denoise_batch(
        self,
        images: Sequence[np.ndarray],
        params: ThresholdParams,
        max_workers: int = 4
    ) -> List[DenoiseResult]:
        """Denoise independent images concurrently; results keep input order."""
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(lambda img: self.denoise(img, params), images))


def denoise_reference(image: np.ndarray, params: ThresholdParams) -> np.ndarray:
    """Host-only pipeline built on the direct transforms."""
    validate_image(image)
    matrix = normalize(image)

    coeffs = forward_haar(matrix)
    coeffs = forward_haar(transpose_host(coeffs))
    coeffs = apply_threshold(coeffs, params)
    restored = transpose_host(inverse_haar(coeffs))
    restored = inverse_haar(restored)

    return denormalize(restored)
