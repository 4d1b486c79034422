from __future__ import annotations
import cv2, numpy as np
from dataclasses import dataclass
from typing import NamedTuple, Tuple
from .glints import Point

EYE_REGION_W = 200
EYE_REGION_H = 160
EIGHT_BIT_SCALE = (265.0/1024.0)*2

class Rect(NamedTuple):
    x: int; y: int; w: int; h: int

@dataclass
class EyeRegion:
    glint: Point          # full-resolution space
    rect: Rect
    image: np.ndarray     # 8-bit region of the frame
    edges: np.ndarray

def to_full_resolution(p: Point, factor: int = 2) -> Point:
    return Point(p.x*factor, p.y*factor)

def clip_rect(r: Rect, w: int, h: int) -> Rect:
    # intersection with (0,0,w,h); empty rect when they don't overlap
    x0, y0 = max(r.x, 0), max(r.y, 0)
    x1, y1 = min(r.x + r.w, w), min(r.y + r.h, h)
    if x1 <= x0 or y1 <= y0: return Rect(0, 0, 0, 0)
    return Rect(x0, y0, x1-x0, y1-y0)

def eye_region_rect(center: Point, frame_shape: Tuple[int, ...],
                    size: Tuple[int, int] = (EYE_REGION_W, EYE_REGION_H)) -> Rect:
    rw, rh = size
    h, w = frame_shape[:2]
    return clip_rect(Rect(center.x - rw//2, center.y - rh//2, rw, rh), w, h)

def extract_region(frame: np.ndarray, rect: Rect, scale: float = EIGHT_BIT_SCALE,
                   blur: bool = False) -> np.ndarray:
    """Copy `rect` out of the 16-bit frame as an 8-bit image, optionally box-blurred 3x3."""
    region = frame[rect.y:rect.y+rect.h, rect.x:rect.x+rect.w]
    region = cv2.convertScaleAbs(region, alpha=scale) if region.size else np.zeros((rect.h, rect.w), np.uint8)
    if blur and region.size:
        region = cv2.blur(region, (3, 3))
    return region

def edge_map(region: np.ndarray, thresh: int) -> np.ndarray:
    if region.size == 0: return region.copy()
    return cv2.Canny(region, thresh, thresh*2, apertureSize=3, L2gradient=True)
