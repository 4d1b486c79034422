from __future__ import annotations
import cv2, logging
import numpy as np
from pathlib import Path
from typing import Dict

log = logging.getLogger(__name__)

WINDOWS = ["main", "glints", "0", "1", "0_edges", "1_edges"]
TRACKBAR = "Canny Threshold:"

class NullDisplay:
    def show(self, name: str, img: np.ndarray): pass
    def poll(self, delay_ms: int = 1) -> int: return -1
    def close(self): pass

class CvDisplay:
    """HighGUI windows plus the edge threshold slider, bound to cfg.canny_thresh."""
    def __init__(self, cfg, windows=WINDOWS):
        self.cfg = cfg
        for name in windows:
            cv2.namedWindow(name, cv2.WINDOW_NORMAL)
        cv2.createTrackbar(TRACKBAR, "main", int(cfg.canny_thresh), 100, self._on_thresh)

    def _on_thresh(self, v: int):
        self.cfg.canny_thresh = int(v)

    def show(self, name, img):
        if img is None or img.size == 0: return
        cv2.imshow(name, img)

    def poll(self, delay_ms: int = 1) -> int:
        return cv2.waitKey(delay_ms) & 0xFF

    def close(self):
        cv2.destroyAllWindows()

class DirectoryDisplay:
    """Writes every shown image to <out>/<prefix><name>.png."""
    def __init__(self, out: str|Path, prefix: str = ""):
        self.out = Path(out); self.prefix = prefix
        self.out.mkdir(parents=True, exist_ok=True)
        self.written: Dict[str, Path] = {}

    def show(self, name, img):
        if img is None or img.size == 0: return
        p = self.out / f"{self.prefix}{name}.png"
        if not cv2.imwrite(str(p), img):
            log.warning("could not write %s", p)
            return
        self.written[name] = p

    def poll(self, delay_ms: int = 1) -> int: return -1
    def close(self): pass
