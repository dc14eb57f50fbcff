import pytest
from conftest import make_job, matrix_from

from crewroute.services.routing.schedule import (
    DEFAULT_JOB_MINUTES,
    calculate_etas,
    format_clock,
    job_duration_minutes,
    parse_start_time,
)


@pytest.mark.parametrize("value, expected", [("08:00", 480), ("8:05", 485), ("00:00", 0), ("23:59", 1439)])
def test_parse_start_time(value, expected):
    assert parse_start_time(value) == expected


@pytest.mark.parametrize("value", ["25:00", "08:60", "eight", "8", "08:00:00", ""])
def test_parse_start_time_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_start_time(value)


@pytest.mark.parametrize(
    "minutes, expected",
    [(0, "12:00 AM"), (490, "8:10 AM"), (720, "12:00 PM"), (785, "1:05 PM"), (1500, "1:00 AM")],
)
def test_format_clock(minutes, expected):
    assert format_clock(minutes) == expected


def test_job_duration_defaults_to_two_hours():
    assert job_duration_minutes(make_job("1")) == DEFAULT_JOB_MINUTES == 120
    assert job_duration_minutes(make_job("1", hours=0)) == 120
    assert job_duration_minutes(make_job("1", hours=1.5)) == 90
    assert job_duration_minutes(make_job("1", hours=2.75)) == 165


def _two_stop_fixture():
    matrix = matrix_from(
        ["team_A", "job_1", "job_2"],
        [
            [0, 10, 30],
            [10, 0, 15],
            [30, 15, 0],
        ],
    )
    jobs = {"job_1": make_job("1", hours=1.5), "job_2": make_job("2")}
    return matrix, jobs


def test_calculate_etas_walks_the_route():
    matrix, jobs = _two_stop_fixture()

    stops = calculate_etas(["job_1", "job_2"], "team_A", "08:00", jobs, matrix)

    first, second = stops
    assert first.order == 1
    assert first.drive_time_minutes == 10
    assert first.arrival_minutes == 490
    assert first.estimated_arrival == "8:10 AM"
    assert first.job_duration_minutes == 90
    assert first.departure_minutes == 580
    assert first.estimated_departure == "9:40 AM"
    assert first.arrival_window == "8:10 AM - 8:40 AM"
    assert first.customer_name == "Customer 1"

    assert second.order == 2
    assert second.drive_time_minutes == 15
    assert second.arrival_minutes == 595
    assert second.estimated_arrival == "9:55 AM"
    assert second.departure_minutes == 715
    assert second.estimated_departure == "11:55 AM"


def test_times_never_go_backwards():
    matrix, jobs = _two_stop_fixture()

    stops = calculate_etas(["job_2", "job_1"], "team_A", "16:30", jobs, matrix)

    clock = 16 * 60 + 30
    for stop in stops:
        assert stop.arrival_minutes >= clock
        assert stop.departure_minutes >= stop.arrival_minutes
        clock = stop.departure_minutes


def test_empty_route_has_no_stops():
    matrix, _ = _two_stop_fixture()

    assert calculate_etas([], "team_A", "08:00", {}, matrix) == []
