from __future__ import annotations
import cv2, time, logging
import numpy as np
from pathlib import Path
from typing import Iterator, Dict, Any

log = logging.getLogger(__name__)

IMAGE_EXTS = {".png", ".tif", ".tiff", ".pgm", ".bmp", ".jpg"}

def to_u16(img: np.ndarray) -> np.ndarray:
    """Grey 16-bit frame; 8-bit input is widened to the sensor's 10-bit range."""
    if img.ndim == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    if img.dtype == np.uint8:
        return img.astype(np.uint16) << 2
    return img.astype(np.uint16, copy=False)

def _still_paths(source: Path):
    if source.is_dir():
        return sorted(p for p in source.iterdir() if p.suffix.lower() in IMAGE_EXTS)
    return [source]

def frames(source: int|str=0, width: int=0, height: int=0, raw: bool=False) -> Iterator[Dict[str,Any]]:
    """Yield {"image": uint16 frame, "meta": {...}} from a camera, video, image or image folder."""
    path = Path(str(source))
    if not isinstance(source, int) and (path.is_dir() or path.suffix.lower() in IMAGE_EXTS):
        for i, p in enumerate(_still_paths(path)):
            img = cv2.imread(str(p), cv2.IMREAD_ANYDEPTH | cv2.IMREAD_GRAYSCALE)
            if img is None:
                log.warning("skipping unreadable image %s", p)
                continue
            yield {"image": to_u16(img), "meta": {"ts": time.time(), "index": i, "path": str(p)}}
        return

    cap = cv2.VideoCapture(int(source) if str(source).isdigit() else str(source))
    if width:  cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    if height: cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    # Y16 sensors: skip the backend's RGB conversion to get the 16-bit samples
    if raw: cap.set(cv2.CAP_PROP_CONVERT_RGB, 0)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open source {source!r}")
    try:
        i = 0
        while True:
            ok, frame = cap.read()
            if not ok: break
            yield {"image": to_u16(frame), "meta": {"ts": time.time(), "index": i}}
            i += 1
    finally:
        cap.release()
