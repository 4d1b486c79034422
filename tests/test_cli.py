import socket
import numpy as np, cv2, pytest
from typer.testing import CliRunner
from glinttrack import cli
from glinttrack.cli import app

runner = CliRunner()

def test_config_prints_defaults():
    res = runner.invoke(app, ["config"])
    assert res.exit_code == 0
    assert "canny_thresh: 5" in res.output

def test_config_rejects_missing_file():
    res = runner.invoke(app, ["config", "nowhere.yaml"])
    assert res.exit_code == 2

def test_still_writes_debug_views(tmp_path):
    frame = np.full((960,1280), 100, np.uint16)
    cv2.circle(frame, (100,100), 6, 1000, -1)
    cv2.circle(frame, (400,100), 6, 1000, -1)
    src = tmp_path / "eye.png"
    assert cv2.imwrite(str(src), frame)
    out = tmp_path / "out"
    res = runner.invoke(app, ["still", str(src), "--out", str(out)])
    assert res.exit_code == 0, res.output
    for name in ["main", "glints", "0", "1", "0_edges", "1_edges"]:
        assert (out / f"eye_{name}.png").exists()
    assert cv2.imread(str(out / "eye_main.png")).shape == (480, 640, 3)

def eye_frame():
    frame = np.full((960,1280), 100, np.uint16)
    cv2.circle(frame, (100,100), 6, 1000, -1)
    cv2.circle(frame, (400,100), 6, 1000, -1)
    return frame

@pytest.mark.parametrize("text", ["canny_thresh: [5\n", "- 1\n- 2\n"])
def test_config_rejects_bad_yaml(tmp_path, text):
    p = tmp_path / "c.yaml"
    p.write_text(text)
    res = runner.invoke(app, ["config", str(p)])
    assert res.exit_code == 2
    assert "Bad config" in res.output

def test_run_counts_rejected_frames_toward_max(tmp_path, monkeypatch):
    pulled = []
    def fake_frames(source, raw=False):
        while True:
            assert len(pulled) < 5, "frame budget ignored"
            pulled.append(source)
            yield {"image": eye_frame(), "meta": {"ts": 0.0, "index": len(pulled)-1}}
    monkeypatch.setattr(cli, "frames", fake_frames)
    p = tmp_path / "c.yaml"
    p.write_text("frame_size: [640, 480]\n")
    res = runner.invoke(app, ["run", "cam", "--config", str(p), "--headless", "--max-frames", "2"])
    assert res.exit_code == 0, res.output
    assert len(pulled) == 2
    assert '"glints"' not in res.output

def test_run_reports_busy_websocket_port(tmp_path):
    assert cv2.imwrite(str(tmp_path / "eye.png"), eye_frame())
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("0.0.0.0", 0))
        s.listen(1)
        port = s.getsockname()[1]
        res = runner.invoke(app, ["run", str(tmp_path), "--ws", "--port", str(port), "--headless"])
    assert res.exit_code == 1
    assert "WebSocket broadcast failed" in res.output
