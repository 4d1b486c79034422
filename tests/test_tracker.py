import logging
import numpy as np, cv2, pytest
from glinttrack.config import TrackingConfig
from glinttrack.eye.tracker import GlintTracker, FrameError, correct_defects
from glinttrack.kernels.reference import create_gens

def eye_frame(glints=((100,100), (400,100)), bg=100, fg=1000):
    frame = np.full((960,1280), bg, np.uint16)
    for c in glints:
        cv2.circle(frame, c, 6, fg, -1)
    return frame

class RecordingDisplay:
    def __init__(self): self.shown = {}
    def show(self, name, img): self.shown[name] = img

class BrokenKernels:
    def find_glints(self, img): raise RuntimeError("device lost")
    def close(self): pass

def near(p, q, tol):
    return abs(p[0]-q[0]) <= tol and abs(p[1]-q[1]) <= tol

def test_two_glints_end_to_end():
    res = GlintTracker()(eye_frame())
    assert len(res.glints) == 2
    assert near(res.glints[0], (50,50), 2) and near(res.glints[1], (200,50), 2)
    full = res.full_res_glints
    assert near(full[0], (100,100), 4) and near(full[1], (400,100), 4)
    assert len(res.regions) == 2
    for r in res.regions:
        assert r.edges.size > 0 and r.edges.shape == r.image.shape
        assert r.edges.any()
    assert res.debug.shape == (480, 640, 3)

def test_no_glints_on_uniform_frame():
    res = GlintTracker()(np.full((960,1280), 300, np.uint16))
    assert res.glints == [] and res.regions == []
    assert res.debug.shape == (480, 640, 3)

def test_glint_near_edge_gives_clipped_region():
    res = GlintTracker()(eye_frame(glints=((8,900),)))
    assert len(res.regions) == 1
    r = res.regions[0].rect
    assert r.x == 0 and r.w < 200 and r.y + r.h <= 960
    assert res.regions[0].image.size > 0

def test_debug_composite_marks_glints():
    res = GlintTracker()(eye_frame())
    for g in res.glints:
        assert tuple(res.debug[g.y, g.x+3]) == (255, 0, 255)

def test_stuck_pixel_is_a_glint_until_configured():
    frame = np.full((960,1280), 100, np.uint16)
    frame[283, 627] = 60000
    assert GlintTracker()(frame).glints == [(313,141)]
    cfg = TrackingConfig(defect_pixels=[(627,283)])
    assert GlintTracker(cfg)(frame).glints == []
    # caller's frame is left alone
    assert frame[283, 627] == 60000

def test_correct_defects_uses_right_neighbour_at_column_zero():
    frame = np.arange(12, dtype=np.uint16).reshape(3,4)
    out = correct_defects(frame, [(0,1), (2,2)])
    assert out[1,0] == frame[1,1] and out[2,2] == frame[2,1]

@pytest.mark.parametrize("frame", [
    np.zeros((960,1280), np.uint8),
    np.zeros((960,1280,3), np.uint16),
    np.zeros((1,1), np.uint16),
])
def test_malformed_frames_rejected(frame):
    with pytest.raises(FrameError):
        GlintTracker()(frame)

def test_frame_size_and_defect_bounds_checked(caplog):
    with pytest.raises(FrameError):
        GlintTracker(TrackingConfig(frame_size=(640,480)))(eye_frame())
    with pytest.raises(FrameError):
        GlintTracker(TrackingConfig(defect_pixels=[(2000,10)]))(eye_frame())
    assert "dropping frame" in caplog.text

def test_elapsed_time_logged(caplog):
    with caplog.at_level(logging.INFO, logger="glinttrack.eye.tracker"):
        res = GlintTracker()(eye_frame())
    assert "elapsed time" in caplog.text
    assert res.elapsed_ms >= 0

def test_views_sent_to_display():
    disp = RecordingDisplay()
    GlintTracker(display=disp)(eye_frame())
    assert set(disp.shown) == {"main", "glints", "0", "1", "0_edges", "1_edges"}

def test_comparison_from_kernel_set():
    gens = create_gens()
    res = GlintTracker(kernels=gens)(eye_frame())
    assert res.comparison.shape == (480, 640) and res.comparison.dtype == np.uint8
    assert (res.comparison == 0).any()

def test_kernel_failure_gives_blank_comparison(caplog):
    res = GlintTracker(kernels=BrokenKernels())(eye_frame())
    assert len(res.glints) == 2
    assert not res.comparison.any()
    assert "device lost" in caplog.text

def test_kernel_detector_drives_regions():
    cfg = TrackingConfig(detector="kernel")
    res = GlintTracker(cfg, kernels=create_gens())(eye_frame())
    assert len(res.glints) == 2
    assert near(res.glints[0], (50,50), 2) and near(res.glints[1], (200,50), 2)

def test_kernel_detector_needs_kernels():
    with pytest.raises(ValueError):
        GlintTracker(TrackingConfig(detector="kernel"))

def test_canny_threshold_follows_config():
    cfg = TrackingConfig()
    tracker = GlintTracker(cfg)
    low = tracker(eye_frame())
    cfg.canny_thresh = 100
    high = tracker(eye_frame())
    assert (high.regions[1].edges > 0).sum() <= (low.regions[1].edges > 0).sum()
