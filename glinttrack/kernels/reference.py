from __future__ import annotations
import cv2, numpy as np

GLINT_FRACTION = 0.9

class ReferenceGens:
    """
    Kernel set built on OpenCV: marks every pixel above a fraction of the
    frame maximum, same 0-marker convention as the adaptive scanner.
    """
    def __init__(self, glint_fraction: float = GLINT_FRACTION):
        self.glint_fraction = glint_fraction
        self.closed = False

    def find_glints(self, img: np.ndarray) -> np.ndarray:
        if self.closed:
            raise RuntimeError("kernel set already released")
        _, max_val, _, _ = cv2.minMaxLoc(img)
        if max_val <= 0:
            return np.full(img.shape[:2], 255, np.uint8)
        _, out = cv2.threshold(img, max_val*self.glint_fraction, 255, cv2.THRESH_BINARY_INV)
        return out.astype(np.uint8, copy=False)

    def close(self):
        self.closed = True

def create_gens(glint_fraction: float = GLINT_FRACTION) -> ReferenceGens:
    return ReferenceGens(glint_fraction)
