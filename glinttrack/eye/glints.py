from __future__ import annotations
import cv2, numpy as np
from typing import List, NamedTuple

FIRST_GLINT_X_SHADOW = 100
GLINT_NEIGHBOURHOOD = 100
THRESH_BLOCK = 11
THRESH_C = -30.0

class Point(NamedTuple):
    x: int
    y: int

ORIGIN = Point(0, 0)

def refine_center(mask: np.ndarray, p: Point, size: int) -> Point:
    """
    Average the coordinates of all marker (0) pixels in the window
    [p-size, p+size) around p. Returns the origin when there are none.
    """
    rows, cols = mask.shape[:2]
    y0, y1 = max(0, p[1]-size), min(rows, p[1]+size)
    x0, x1 = max(0, p[0]-size), min(cols, p[0]+size)
    if y0 >= y1 or x0 >= x1: return ORIGIN
    ys, xs = np.nonzero(mask[y0:y1, x0:x1] == 0)
    if len(xs) == 0: return ORIGIN
    n = len(xs)
    return Point(int(xs.sum() + x0*n) // n, int(ys.sum() + y0*n) // n)

def binarize(img: np.ndarray, block_size: int = THRESH_BLOCK, c: float = THRESH_C) -> np.ndarray:
    # in place: bright pixels (above local mean - c) become 0
    img[...] = cv2.adaptiveThreshold(img, 255, cv2.ADAPTIVE_THRESH_MEAN_C,
                                     cv2.THRESH_BINARY_INV, block_size, c)
    return img

def first_candidates(mask: np.ndarray, shadow: int = FIRST_GLINT_X_SHADOW, limit: int = 2) -> List[Point]:
    """
    First marker pixels in raster order (rows top-down, columns left-right).
    After the first one, only markers further than `shadow` columns from it are
    taken, which skips reflections off teeth, glasses frames or headphones
    sitting next to the first glint.
    """
    ys, xs = np.nonzero(mask == 0)  # row-major, i.e. raster order
    if len(xs) == 0 or limit <= 0: return []
    first = Point(int(xs[0]), int(ys[0]))
    out = [first]
    far = np.flatnonzero(np.abs(xs.astype(np.int64) - first.x) > shadow)
    for i in far[:limit-1]:
        out.append(Point(int(xs[i]), int(ys[i])))
    return out

def scan_glints(img: np.ndarray, shadow: int = FIRST_GLINT_X_SHADOW,
                neighbourhood: int = GLINT_NEIGHBOURHOOD,
                block_size: int = THRESH_BLOCK, c: float = THRESH_C) -> List[Point]:
    """Binarize `img` in place and return up to two glints sorted by x."""
    binarize(img, block_size, c)
    return locate(img, shadow, neighbourhood)

def locate(mask: np.ndarray, shadow: int = FIRST_GLINT_X_SHADOW,
           neighbourhood: int = GLINT_NEIGHBOURHOOD) -> List[Point]:
    # pull each hit from the blob's top-left edge towards its centre
    glints = [refine_center(mask, p, neighbourhood) for p in first_candidates(mask, shadow)]
    # consistent order so debug views don't jitter
    glints.sort(key=lambda p: p.x)
    return glints
