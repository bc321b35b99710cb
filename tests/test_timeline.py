import datetime as dt

import pytest

from gantt_timeline.config import DEFAULT_CONFIG
from gantt_timeline.timeline import TimelineModel, compute_bounds


def test_bounds_pad_overall_min_and_max_by_seven_days():
    dates = [dt.date(2024, 1, 1), dt.date(2024, 1, 10), dt.date(2024, 2, 1), dt.date(2024, 2, 5)]

    assert compute_bounds(dates) == (dt.date(2023, 12, 25), dt.date(2024, 2, 12))


def test_bounds_without_dates_fall_back_to_window_around_today():
    today = dt.date(2024, 6, 1)

    start, end = compute_bounds([], today=today)

    assert start == today - dt.timedelta(days=30)
    assert end == today + dt.timedelta(days=90)


def test_width_uses_minimum_for_short_schedules():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 1, 11), scale="weeks")

    assert model.width == DEFAULT_CONFIG.min_width


def test_width_scales_with_pixels_per_unit_and_zoom():
    start, end = dt.date(2024, 1, 1), dt.date(2024, 4, 10)  # 100 days

    assert TimelineModel(start, end, scale="days").width == 4000
    assert TimelineModel(start, end, scale="weeks").width == 2000
    assert TimelineModel(start, end, scale="months").width == 1200
    assert TimelineModel(start, end, scale="days", zoom=2.0).width == 8000


def test_width_is_capped_for_very_long_schedules():
    model = TimelineModel(dt.date(2020, 1, 1), dt.date(2026, 1, 1), scale="days")

    assert model.width == DEFAULT_CONFIG.max_width


def test_date_to_x_maps_window_edges():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 1, 31), scale="days")

    assert model.date_to_x(model.start) == 0
    assert model.date_to_x(model.end) == pytest.approx(model.width)
    assert model.date_to_x(dt.date(2024, 1, 16)) == pytest.approx(model.width / 2)
    assert model.date_to_x(dt.datetime(2024, 1, 1, 12)) == pytest.approx(model.pixels_per_day / 2)


@pytest.mark.parametrize("scale", ["days", "weeks", "months"])
@pytest.mark.parametrize("zoom", [0.25, 1.0, 3.5])
def test_x_to_date_inverts_date_to_x(scale, zoom):
    model = TimelineModel(dt.date(2023, 11, 20), dt.date(2024, 3, 2), scale=scale, zoom=zoom)

    day = model.start
    while day <= model.end:
        assert model.x_to_date(model.date_to_x(day)) == day
        day += dt.timedelta(days=1)


def test_rescaling_and_zooming_return_new_models():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 4, 10), scale="weeks")

    rescaled = model.with_scale("days")
    zoomed = model.zoom_in()

    assert model.scale == "weeks" and model.zoom == 1.0
    assert rescaled.scale == "days" and rescaled.start == model.start
    assert zoomed.zoom == 1.25


def test_zoom_is_clamped():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 2, 1))

    assert model.with_zoom(10).zoom == DEFAULT_CONFIG.zoom_max
    assert model.with_zoom(0.25).zoom_out().zoom == DEFAULT_CONFIG.zoom_min


def test_invalid_window_or_scale_raises():
    with pytest.raises(ValueError):
        TimelineModel(dt.date(2024, 1, 2), dt.date(2024, 1, 1))
    with pytest.raises(ValueError):
        TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 1, 2), scale="years")
