from __future__ import annotations
import importlib, logging
import numpy as np
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol, Union

log = logging.getLogger(__name__)

DEFAULT_FACTORY = "glinttrack.kernels.reference:create_gens"

class KernelError(RuntimeError):
    pass

class KernelSet(Protocol):
    def find_glints(self, img: np.ndarray) -> np.ndarray: ...
    def close(self) -> None: ...

Factory = Union[str, Callable[[], KernelSet]]

def load_factory(spec: str) -> Callable[[], KernelSet]:
    """Resolve "package.module:callable" to the callable."""
    mod_name, _, attr = spec.partition(":")
    if not mod_name or not attr:
        raise KernelError(f"kernel factory must look like 'module:callable', got {spec!r}")
    try:
        mod = importlib.import_module(mod_name)
        return getattr(mod, attr)
    except (ImportError, AttributeError) as e:
        raise KernelError(f"cannot load kernel factory {spec!r}: {e}") from e

def create_handle(factory: Factory = DEFAULT_FACTORY) -> KernelSet:
    fn = load_factory(factory) if isinstance(factory, str) else factory
    try:
        gens = fn()
    except Exception as e:
        raise KernelError(f"kernel set creation failed: {e}") from e
    log.debug("kernel set created: %r", gens)
    return gens

def destroy_handle(gens: KernelSet):
    # shutdown must go on even if the kernel set misbehaves
    try:
        gens.close()
    except Exception:
        log.exception("kernel set release failed")

def external_detect(gens: KernelSet, img: np.ndarray) -> np.ndarray:
    out = np.asarray(gens.find_glints(img))
    if out.dtype != np.uint8 or out.shape != img.shape[:2]:
        raise KernelError(f"kernel returned {out.dtype} image of shape {out.shape}, expected uint8 {img.shape[:2]}")
    return out

@contextmanager
def open_kernels(factory: Factory = DEFAULT_FACTORY) -> Iterator[KernelSet]:
    """One kernel set per tracking session; released exactly once on every exit path."""
    gens = create_handle(factory)
    try:
        yield gens
    finally:
        destroy_handle(gens)
