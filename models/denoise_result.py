"""Denoising result with timings and metrics."""

from dataclasses import dataclass, field
from typing import Dict, Optional
import numpy as np

from models.threshold_params import ThresholdMode


@dataclass
class DenoiseResult:
    """Results from the denoising pipeline."""
    
    original_image: np.ndarray
    denoised_image: np.ndarray
    
    width: int
    height: int
    threshold: float
    mode: ThresholdMode
    
    # Runtime (kernel time per pipeline stage)
    stage_times_ms: Dict[str, float] = field(default_factory=dict)
    total_time_ms: float = 0.0
    
    # Quality metrics, only when a clean reference was supplied
    psnr: Optional[float] = None
    ssim: Optional[float] = None
    
    backend_name: str = "numpy"
