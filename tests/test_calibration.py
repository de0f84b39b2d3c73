from GazeProctor.calibration.models import (
    CalibrationPhase,
    PointState,
    TOTAL_CALIBRATION_POINTS,
    default_grid,
)
from GazeProctor.calibration.state_machine import CalibrationSession


def states(cal):
    return [p.state for p in cal.points]


def test_grid_positions():
    pts = default_grid()
    assert len(pts) == TOTAL_CALIBRATION_POINTS
    assert (pts[0].x_pct, pts[0].y_pct) == (5.0, 5.0)
    assert (pts[2].x_pct, pts[2].y_pct) == (95.0, 5.0)
    assert (pts[4].x_pct, pts[4].y_pct) == (50.0, 50.0)
    assert (pts[8].x_pct, pts[8].y_pct) == (95.0, 95.0)
    assert pts[4].to_pixels((1000, 800)) == (500, 400)


def test_start_activates_first_point_and_shows_markers():
    calls = []
    cal = CalibrationSession(on_markers=calls.append)
    assert cal.phase is CalibrationPhase.NOT_STARTED
    cal.start()
    assert cal.phase is CalibrationPhase.IN_PROGRESS
    assert cal.current_index == 0
    assert states(cal) == [PointState.ACTIVE] + [PointState.INACTIVE] * 8
    assert calls == [True]


def test_in_order_clicks_reach_complete():
    calls = []
    cal = CalibrationSession(on_markers=calls.append)
    cal.start()
    for i in range(TOTAL_CALIBRATION_POINTS - 1):
        assert cal.click(i)
        assert cal.current_index == i + 1
        expected = [PointState.CLICKED] * (i + 1) + [PointState.ACTIVE] + [PointState.INACTIVE] * (7 - i)
        assert states(cal) == expected
        assert sum(1 for s in states(cal) if s is PointState.ACTIVE) == 1
    assert cal.click(8)
    assert cal.phase is CalibrationPhase.COMPLETE
    assert cal.is_complete
    assert cal.current_index == TOTAL_CALIBRATION_POINTS
    assert cal.points == []
    assert cal.active_point() is None
    assert calls == [True, False]


def test_out_of_order_click_is_ignored():
    cal = CalibrationSession()
    cal.start()
    assert cal.click(0)
    before = states(cal)
    assert not cal.click(2)
    assert cal.current_index == 1
    assert states(cal) == before
    assert cal.click(1)
    assert cal.current_index == 2


def test_click_before_start_is_ignored():
    cal = CalibrationSession()
    assert not cal.click(0)
    assert cal.phase is CalibrationPhase.NOT_STARTED


def test_clicks_after_complete_are_ignored():
    cal = CalibrationSession()
    cal.start()
    for i in range(TOTAL_CALIBRATION_POINTS):
        cal.click(i)
    assert not cal.click(8)
    assert not cal.click(9)
    assert cal.is_complete


def test_reset_returns_to_not_started():
    cal = CalibrationSession()
    cal.start()
    for i in range(TOTAL_CALIBRATION_POINTS):
        cal.click(i)
    cal.reset()
    assert cal.phase is CalibrationPhase.NOT_STARTED
    assert cal.current_index == 0
    assert cal.points == []


def test_restart_midway_resets_progress():
    cal = CalibrationSession()
    cal.start()
    cal.click(0)
    cal.click(1)
    cal.start()
    assert cal.current_index == 0
    assert states(cal)[0] is PointState.ACTIVE
