import io
import re
import zipfile

import cv2
import numpy as np
import pytest

from GazeProctor.analysis.renderer import HeatmapRenderer
from GazeProctor.core.session import Session
from GazeProctor.report.archive import (
    HEATMAP_NAME,
    REPORT_NAME,
    EvidenceArchiver,
    build_report_text,
)
from GazeProctor.report.bundle import ZipBundler
from GazeProctor.tracking.classifier import GazeClassifier
from GazeProctor.tracking.estimator import GazeSample
from GazeProctor.tracking.snapshot import SnapshotCapture

from conftest import FakeVideo, MutableViewport

VIEWPORT = (1000, 800)


def scenario_session(video=None):
    s = Session()
    s.tracking = True
    clf = GazeClassifier(MutableViewport(*VIEWPORT), SnapshotCapture(video or FakeVideo()))
    clf.process(GazeSample(1050, 400, 12.3), s)
    clf.process(GazeSample(500, 400, 12.4), s)
    s.tracking = False
    return s


def test_report_text_scenario():
    text = build_report_text(scenario_session())
    lines = text.splitlines()
    assert lines[0] == "Exam Report"
    assert lines[1] == "Total Off-Screen Events: 1"
    assert lines[2] == ""
    assert len(lines) == 4
    assert re.fullmatch(r"1\. Time: \d{2}:\d{2}:\d{2}, Coords: \(1050, 400\) \(Snapshot: snapshot_1\.jpg\)", lines[3])


def test_report_text_without_snapshot():
    text = build_report_text(scenario_session(FakeVideo(available=False)))
    assert text.splitlines()[3].endswith("Coords: (1050, 400)")


def test_assemble_scenario():
    archive = EvidenceArchiver().assemble(scenario_session(), VIEWPORT)
    assert list(archive.snapshot_files) == ["snapshot_1.jpg"]
    assert archive.snapshot_files["snapshot_1.jpg"][:2] == b"\xff\xd8"
    png = archive.heatmap_image
    assert png is not None
    img = cv2.imdecode(np.frombuffer(png, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    assert img.shape == (800 + 600, 1000 + 600, 4)


def test_zip_layout():
    archive = EvidenceArchiver().assemble(scenario_session(), VIEWPORT)
    with zipfile.ZipFile(io.BytesIO(archive.to_zip())) as zf:
        names = zf.namelist()
        assert names == [REPORT_NAME, "snapshots/snapshot_1.jpg", HEATMAP_NAME]
        assert zf.read(REPORT_NAME).decode("utf-8") == archive.report_text
        assert zf.read("snapshots/snapshot_1.jpg") == archive.snapshot_files["snapshot_1.jpg"]
        assert zf.read(HEATMAP_NAME) == archive.heatmap_image


def test_bundler_folders_and_entry_kinds():
    zb = ZipBundler()
    zb.file("a.txt", "hello")
    zb.folder("imgs").file("raw.bin", b"\x00\x01").file("enc.bin", "AAE=", base64_encoded=True)
    with zipfile.ZipFile(io.BytesIO(zb.generate())) as zf:
        assert zf.namelist() == ["a.txt", "imgs/raw.bin", "imgs/enc.bin"]
        assert zf.read("a.txt") == b"hello"
        assert zf.read("imgs/raw.bin") == b"\x00\x01"
        assert zf.read("imgs/enc.bin") == b"\x00\x01"


def test_empty_session_has_no_heatmap():
    archive = EvidenceArchiver().assemble(Session(), VIEWPORT)
    assert archive.heatmap_image is None
    assert archive.snapshot_files == {}
    assert archive.report_text.startswith("Exam Report\nTotal Off-Screen Events: 0\n")
    with zipfile.ZipFile(io.BytesIO(archive.to_zip())) as zf:
        assert zf.namelist() == [REPORT_NAME]


def test_render_failure_degrades_to_text_and_snapshots():
    def broken(width, height):
        raise RuntimeError("no canvas")

    archive = EvidenceArchiver(renderer_factory=broken).assemble(scenario_session(), VIEWPORT)
    assert archive.heatmap_image is None
    assert "snapshot_1.jpg" in archive.snapshot_files
    assert "Total Off-Screen Events: 1" in archive.report_text


class StalledRenderer(HeatmapRenderer):
    def wait_until_rendered(self, timeout=None):
        return False


def test_render_timeout_omits_heatmap():
    archiver = EvidenceArchiver(renderer_factory=lambda w, h: StalledRenderer(w, h), render_timeout=0.01)
    archive = archiver.assemble(scenario_session(), VIEWPORT)
    assert archive.heatmap_image is None


def test_assemble_requires_frozen_session():
    s = scenario_session()
    s.tracking = True
    with pytest.raises(ValueError):
        EvidenceArchiver().assemble(s, VIEWPORT)


def test_snapshot_count_matches_capturable_events():
    video = FakeVideo()
    s = Session()
    s.tracking = True
    clf = GazeClassifier(MutableViewport(*VIEWPORT), SnapshotCapture(video))
    for i in range(6):
        video.available = i % 2 == 0
        clf.process(GazeSample(-10 - i, 10, float(i)), s)
    s.tracking = False
    archive = EvidenceArchiver().assemble(s, VIEWPORT)
    assert sorted(archive.snapshot_files) == ["snapshot_1.jpg", "snapshot_2.jpg", "snapshot_3.jpg"]
