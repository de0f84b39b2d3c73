from GazeProctor.capture.camera import CameraVideoSource
from GazeProctor.tracking.snapshot import SnapshotCapture


def test_unopened_camera_yields_no_frames():
    cam = CameraVideoSource(index=0)
    assert not cam.is_open
    assert cam.frame_size() is None
    assert cam.read_frame() is None
    assert SnapshotCapture(cam).capture() is None
    cam.stop()
    assert cam.cap is None


def test_missing_device_fails_to_start():
    cam = CameraVideoSource(index=987)
    assert cam.start() is False
    assert cam.read_frame() is None
