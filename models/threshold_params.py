"""Thresholding parameters."""

import math
from dataclasses import dataclass
from enum import Enum


class ThresholdMode(str, Enum):
    """Coefficient shrinkage rule."""

    HARD = 'hard'
    SOFT = 'soft'


@dataclass
class ThresholdParams:
    """Wavelet coefficient thresholding parameters."""
    
    threshold: float = 0.12
    mode: ThresholdMode = ThresholdMode.SOFT
    
    def __post_init__(self):
        self.mode = ThresholdMode(self.mode)
        if not math.isfinite(self.threshold) or self.threshold < 0:
            raise ValueError(f"Threshold must be a finite value >= 0, got {self.threshold}")
    
    @property
    def is_soft(self) -> bool:
        return self.mode is ThresholdMode.SOFT
