"""Background workers for the denoising pipeline."""

import numpy as np
from PySide6.QtCore import QObject, Signal

from engines.denoise import DenoiseEngine
from models.threshold_params import ThresholdParams


class DenoiseWorker(QObject):
    """Runs denoising in background thread."""
    
    finished = Signal(object)
    error = Signal(str)
    progress = Signal(str)
    
    def __init__(self, engine: DenoiseEngine, image: np.ndarray, params: ThresholdParams,
                 reference: np.ndarray | None = None):
        super().__init__()
        self.engine = engine
        self.image = image
        self.params = params
        self.reference = reference
    
    def run(self):
        try:
            h, w = self.image.shape[:2]
            self.progress.emit(f"Processing ({w}×{h})...")
            self.progress.emit(f"Haar transform & {self.params.mode.value} threshold ({self.params.threshold:g})...")
            
            result = self.engine.denoise(self.image, self.params, reference=self.reference)
            
            self.finished.emit(result)
        except Exception as e:
            self.error.emit(str(e))
