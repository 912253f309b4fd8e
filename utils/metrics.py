"""Metrics: PSNR, SSIM, kernel timing."""

import logging
import numpy as np
from skimage.metrics import peak_signal_noise_ratio, structural_similarity
from typing import Dict

logger = logging.getLogger('haar_denoise')


def compute_psnr_ssim(reference: np.ndarray, image: np.ndarray) -> Dict[str, float]:
    """Compute PSNR and SSIM of a grayscale image against a clean reference."""
    if reference.shape != image.shape:
        raise ValueError(f"Shape mismatch: {reference.shape} vs {image.shape}")
    psnr = peak_signal_noise_ratio(reference, image, data_range=255)
    
    # SSIM needs a window of at least 7 pixels per edge
    win_size = min(7, *reference.shape)
    if win_size % 2 == 0:
        win_size -= 1
    if win_size >= 3:
        ssim = structural_similarity(reference, image, data_range=255, win_size=win_size)
    else:
        ssim = float('nan')
    
    return {
        'psnr': float(psnr),
        'ssim': float(ssim),
    }


class StageTimer:
    """Accumulates kernel time per pipeline stage."""
    
    def __init__(self):
        self.stage_times_ms: Dict[str, float] = {}
    
    def add(self, stage: str, elapsed_ms: float) -> float:
        self.stage_times_ms[stage] = self.stage_times_ms.get(stage, 0.0) + elapsed_ms
        logger.info('%s ran for: %.3f ms', stage, elapsed_ms)
        return elapsed_ms
    
    @property
    def total_ms(self) -> float:
        return float(sum(self.stage_times_ms.values()))
