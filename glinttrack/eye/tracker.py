from __future__ import annotations
import logging, time
import cv2, numpy as np
from dataclasses import dataclass, field
from typing import List, Optional
from ..config import TrackingConfig
from ..kernels.handle import KernelSet, external_detect
from .detectors import GlintDetector, make_detector
from .glints import Point
from .regions import EyeRegion, edge_map, extract_region, eye_region_rect, to_full_resolution

log = logging.getLogger(__name__)

GLINT_MARK = (255, 0, 255)

class FrameError(ValueError):
    """Frame doesn't match what the tracker was configured for."""

@dataclass
class FrameResult:
    glints: List[Point]               # downsampled space
    regions: List[EyeRegion] = field(default_factory=list)
    debug: Optional[np.ndarray] = None
    comparison: Optional[np.ndarray] = None
    elapsed_ms: float = 0.0

    @property
    def full_res_glints(self) -> List[Point]:
        return [to_full_resolution(p) for p in self.glints]

def check_frame(frame: np.ndarray, cfg: TrackingConfig):
    if not isinstance(frame, np.ndarray) or frame.ndim != 2:
        raise FrameError(f"expected a single-channel frame, got shape {getattr(frame, 'shape', None)}")
    if frame.dtype != np.uint16:
        raise FrameError(f"expected 16-bit samples, got {frame.dtype}")
    h, w = frame.shape
    if h < 2 or w < 2:
        raise FrameError(f"frame too small to downsample: {w}x{h}")
    if cfg.frame_size is not None and (w, h) != tuple(cfg.frame_size):
        raise FrameError(f"frame is {w}x{h}, configured for {cfg.frame_size[0]}x{cfg.frame_size[1]}")
    for x, y in cfg.defect_pixels:
        if not (0 <= x < w and 0 <= y < h):
            raise FrameError(f"defect pixel ({x},{y}) outside {w}x{h} frame")

def correct_defects(frame: np.ndarray, pixels) -> np.ndarray:
    """Paste each stuck pixel over with its horizontal neighbour. Returns a corrected copy."""
    if not pixels: return frame
    out = frame.copy()
    w = out.shape[1]
    for x, y in pixels:
        nx = x-1 if x > 0 else min(x+1, w-1)
        out[y, x] = out[y, nx]
    return out

def compose_debug(display: np.ndarray, mask: np.ndarray, glints) -> np.ndarray:
    # green = image, red/blue = min(image, mask): binarized hits show up pure green
    rb = np.minimum(display, mask)
    dbg = cv2.merge([rb, display, rb])
    for g in glints:
        cv2.circle(dbg, (int(g.x), int(g.y)), 3, GLINT_MARK)
    return dbg

class GlintTracker:
    """
    Per-frame glint pipeline. Holds no state between frames apart from the
    session config and the (borrowed) kernel set.
    """
    def __init__(self, cfg: TrackingConfig|None=None, kernels: KernelSet|None=None,
                 display=None, detector: GlintDetector|None=None):
        self.cfg = cfg or TrackingConfig()
        self.kernels = kernels
        self.display = display
        self.detector = detector or make_detector(self.cfg, kernels)

    def _comparison(self, img: np.ndarray) -> np.ndarray:
        if self.kernels is None:
            return np.zeros_like(img)
        try:
            return external_detect(self.kernels, img.copy())
        except Exception as e:
            log.warning("external glint kernel failed, showing blank comparison: %s", e)
            return np.zeros_like(img)

    def __call__(self, frame: np.ndarray) -> FrameResult:
        cfg = self.cfg
        start = time.perf_counter()
        try:
            check_frame(frame, cfg)
        except FrameError as e:
            log.error("dropping frame: %s", e)
            raise

        big = correct_defects(frame, cfg.defect_pixels)
        h, w = big.shape
        small = cv2.resize(big, (w//2, h//2), interpolation=cv2.INTER_AREA)
        analysis = cv2.convertScaleAbs(small, alpha=cfg.analysis_scale)
        glints, mask = self.detector.detect(analysis)
        comparison = self._comparison(analysis)

        elapsed = (time.perf_counter() - start) * 1000.0
        log.info("elapsed time: %.1fms", elapsed)

        regions: List[EyeRegion] = []
        for i, g in enumerate(glints):
            center = to_full_resolution(g)
            rect = eye_region_rect(center, big.shape, cfg.region_size)
            img = extract_region(big, rect, cfg.display_scale, blur=(i == 0 and cfg.blur_first_region))
            regions.append(EyeRegion(center, rect, img, edge_map(img, cfg.canny_thresh)))

        display = cv2.convertScaleAbs(small, alpha=cfg.display_scale)
        debug = compose_debug(display, mask, glints)

        res = FrameResult(glints, regions, debug, comparison, elapsed)
        if self.display is not None:
            self.show(res)
        return res

    track_frame = __call__

    def show(self, res: FrameResult):
        self.display.show("main", res.debug)
        self.display.show("glints", res.comparison)
        for i, r in enumerate(res.regions):
            self.display.show(str(i), r.image)
            self.display.show(f"{i}_edges", r.edges)
