import datetime as dt

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from gantt_timeline.time_axis import axis_ticks, draw_axis, today_x
from gantt_timeline.timeline import TimelineModel


def test_day_scale_has_daily_minor_lines_and_monday_majors():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 1, 15), scale="days")

    ticks = axis_ticks(model)

    assert len(ticks) == 15
    majors = [tick for tick in ticks if tick.major]
    assert [tick.day for tick in majors] == [dt.date(2024, 1, 1), dt.date(2024, 1, 8), dt.date(2024, 1, 15)]
    assert majors[0].label == "Jan 01"
    assert all(tick.label is None for tick in ticks if not tick.major)


def test_week_scale_labels_month_starts():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 3, 1), scale="weeks")

    ticks = axis_ticks(model)

    assert [tick.label for tick in ticks if tick.major] == ["Jan 2024", "Feb 2024", "Mar 2024"]
    assert all(tick.day.weekday() == 0 for tick in ticks if not tick.major)


def test_month_scale_marks_years_as_majors():
    model = TimelineModel(dt.date(2023, 11, 15), dt.date(2024, 3, 1), scale="months")

    ticks = axis_ticks(model)

    assert [(tick.day, tick.major, tick.label) for tick in ticks] == [
        (dt.date(2023, 12, 1), False, "Dec"),
        (dt.date(2024, 1, 1), True, "2024"),
        (dt.date(2024, 2, 1), False, "Feb"),
        (dt.date(2024, 3, 1), False, "Mar"),
    ]


def test_ticks_are_ordered_by_x():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 6, 1), scale="weeks")

    xs = [tick.x for tick in axis_ticks(model)]

    assert xs == sorted(xs)


def test_today_marker_only_inside_window():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 1, 31), scale="days")

    assert today_x(model, dt.date(2024, 1, 11)) == model.date_to_x(dt.date(2024, 1, 11))
    assert today_x(model, dt.date(2024, 2, 11)) is None


def test_draw_axis_adds_gridlines_and_today_label():
    model = TimelineModel(dt.date(2024, 1, 1), dt.date(2024, 1, 15), scale="days")
    fig, ax = plt.subplots()

    draw_axis(ax, model, chart_height=100, today=dt.date(2024, 1, 3))

    # 15 gridlines, the axis base line and the today marker.
    assert len(ax.lines) == 17
    assert "Today" in [text.get_text() for text in ax.texts]
    plt.close(fig)


def test_ticks_stay_inside_window_across_year_end():
    model = TimelineModel(dt.date(2023, 12, 28), dt.date(2024, 1, 3), scale="days")

    ticks = axis_ticks(model)

    assert [tick.day for tick in ticks] == [dt.date(2023, 12, 28) + dt.timedelta(days=n) for n in range(7)]
    assert [(tick.day, tick.label) for tick in ticks if tick.major] == [(dt.date(2024, 1, 1), "Jan 01")]
