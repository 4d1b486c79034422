from __future__ import annotations
import yaml
from pathlib import Path
from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .eye.glints import FIRST_GLINT_X_SHADOW, GLINT_NEIGHBOURHOOD, THRESH_BLOCK, THRESH_C
from .eye.regions import EYE_REGION_W, EYE_REGION_H, EIGHT_BIT_SCALE

class TrackingConfig(BaseModel):
    """
    Per-session tracking settings. Assignment is validated, so the UI slider
    can write canny_thresh directly.
    """
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    canny_thresh: int = Field(5, ge=0, le=100)
    # stuck sensor pixels as [x, y] in full-resolution space
    defect_pixels: List[Tuple[int, int]] = []
    frame_size: Optional[Tuple[int, int]] = None  # expected [w, h]; None = any
    shadow: int = Field(FIRST_GLINT_X_SHADOW, ge=0)
    neighbourhood: int = Field(GLINT_NEIGHBOURHOOD, ge=1)
    region_size: Tuple[int, int] = (EYE_REGION_W, EYE_REGION_H)
    analysis_scale: float = Field(256.0/1024.0, gt=0)
    display_scale: float = Field(EIGHT_BIT_SCALE, gt=0)
    block_size: int = Field(THRESH_BLOCK, ge=3)
    threshold_c: float = THRESH_C
    blur_first_region: bool = True
    detector: Literal["scan", "kernel"] = "scan"
    kernels: Optional[str] = "glinttrack.kernels.reference:create_gens"

    @field_validator("block_size")
    @classmethod
    def _odd_block(cls, v: int) -> int:
        if v % 2 == 0: raise ValueError("block_size must be odd")
        return v

def load_config(path: str|Path|None) -> TrackingConfig:
    if path and Path(path).exists():
        with open(path, "r") as f:
            try: data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping of settings, got {type(data).__name__}")
        return TrackingConfig(**data)
    if path:
        raise FileNotFoundError(f"config not found: {path}")
    return TrackingConfig()

def dump_config(cfg: TrackingConfig) -> str:
    return yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False)
