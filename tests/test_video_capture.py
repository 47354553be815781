import cv2
import numpy as np
import pytest

from core.video_capture import FrameSource, IntervalThrottle, downscale


def test_throttle_respects_interval():
    throttle = IntervalThrottle(100)
    assert throttle.ready(0.0)
    assert not throttle.ready(50.0)
    assert throttle.ready(100.0)
    assert not throttle.ready(199.0)
    throttle.reset()
    assert throttle.ready(199.0)


def test_zero_interval_passes_everything():
    throttle = IntervalThrottle(0)
    assert all(throttle.ready(t) for t in (0.0, 0.0, 1.0))


def test_downscale():
    frame = np.zeros((960, 1280, 3), dtype=np.uint8)
    assert downscale(frame, (640, 480)).shape == (480, 640, 3)
    assert downscale(frame, (1280, 960)) is frame


def test_image_source_yields_one_scaled_frame(tmp_path):
    path = tmp_path / "still.png"
    cv2.imwrite(str(path), np.full((240, 320, 3), 50, dtype=np.uint8))
    with FrameSource(str(path), process_size=(160, 120)) as source:
        assert source.is_image
        frames = list(source.frames())
    assert len(frames) == 1
    ts, original, small = frames[0]
    assert ts == 0.0
    assert original.shape == (240, 320, 3)
    assert small.shape == (120, 160, 3)


def test_video_source_iterates_frames(tmp_path):
    # numbered PNGs go through cv2.VideoCapture without needing a video codec
    for i in range(5):
        cv2.imwrite(str(tmp_path / f"frame_{i:03d}.png"), np.full((48, 64, 3), i * 40, dtype=np.uint8))
    pattern = str(tmp_path / "frame_%03d.png")

    with FrameSource(pattern, process_size=(32, 24)) as source:
        assert not source.is_image
        frames = list(source.frames())
    assert len(frames) == 5
    timestamps = [ts for ts, _, _ in frames]
    assert timestamps == sorted(timestamps)
    assert [int(original[0, 0, 0]) for _, original, _ in frames] == [0, 40, 80, 120, 160]
    assert all(small.shape == (24, 32, 3) for _, _, small in frames)


def test_missing_sources_raise(tmp_path):
    with pytest.raises(IOError):
        FrameSource(str(tmp_path / "missing.jpg")).open()
    with pytest.raises(IOError):
        FrameSource(str(tmp_path / "missing.avi")).open()


def test_frames_require_open_source():
    with pytest.raises(RuntimeError):
        next(FrameSource("clip.avi").frames())
