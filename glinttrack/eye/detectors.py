from __future__ import annotations
import numpy as np
from typing import List, Optional, Protocol, Tuple
from .glints import Point, binarize, locate
from ..kernels.handle import KernelSet, external_detect

class GlintDetector(Protocol):
    def detect(self, img: np.ndarray) -> Tuple[List[Point], np.ndarray]:
        """Return (glints in `img` space sorted by x, 0-marker mask). Must not modify `img`."""
        ...

class ScanDetector:
    """Adaptive threshold + raster scan."""
    def __init__(self, shadow:int=100, neighbourhood:int=100, block_size:int=11, c:float=-30.0):
        self.shadow=shadow; self.neighbourhood=neighbourhood
        self.block_size=block_size; self.c=c

    def detect(self, img):
        # binarization is destructive; work on a copy
        mask = binarize(img.copy(), self.block_size, self.c)
        return locate(mask, self.shadow, self.neighbourhood), mask

class KernelDetector:
    """Same candidate selection, run on the glint image of an external kernel set."""
    def __init__(self, gens: KernelSet, shadow:int=100, neighbourhood:int=100):
        self.gens=gens; self.shadow=shadow; self.neighbourhood=neighbourhood

    def detect(self, img):
        mask = external_detect(self.gens, img.copy())
        return locate(mask, self.shadow, self.neighbourhood), mask

def make_detector(cfg, gens: Optional[KernelSet]=None) -> GlintDetector:
    if cfg.detector == "kernel":
        if gens is None:
            raise ValueError("detector 'kernel' needs an open kernel set")
        return KernelDetector(gens, cfg.shadow, cfg.neighbourhood)
    return ScanDetector(cfg.shadow, cfg.neighbourhood, cfg.block_size, cfg.threshold_c)
