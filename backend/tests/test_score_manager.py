import logging
import threading
from datetime import timedelta

import pytest

from classpoint.errors import InvalidInput, InvalidToken, NotFound, StorageFailure, Unauthenticated
from classpoint.models import SensorReading, SessionKind
from classpoint.services import ScoreManager

from conftest import INTERVAL_MS, TZ, count_rows


def _dark_empty_room() -> SensorReading:
    return SensorReading(temperature=24, humidity=50, is_people=False, lux=10, use_air_conditioner=False)


# -----------------------------------------------------------------------------
# Sessions
# -----------------------------------------------------------------------------

def test_missing_token_is_unauthenticated(manager):
    with pytest.raises(Unauthenticated):
        manager.resolve_session(None, SessionKind.CLASS)
    with pytest.raises(Unauthenticated):
        manager.resolve_session("", SessionKind.STUDENT)


def test_unknown_token_is_invalid(manager, classes):
    manager.sessions.issue_class_token(classes[0])
    with pytest.raises(InvalidToken):
        manager.resolve_session("not-a-real-token", SessionKind.CLASS)


def test_class_token_resolves_to_its_classroom(manager, classes):
    token = manager.sessions.issue_class_token(classes[1])
    identity = manager.resolve_session(token, SessionKind.CLASS)
    assert identity.class_id == classes[1]
    assert identity.student_id is None


def test_student_token_resolves_to_class_and_student(manager, classes):
    token = manager.sessions.issue_student_token(classes[2], "s-17")
    identity = manager.resolve_session(token, SessionKind.STUDENT)
    assert (identity.class_id, identity.student_id) == (classes[2], "s-17")


def test_class_token_is_not_a_student_token(manager, classes):
    token = manager.sessions.issue_class_token(classes[0])
    with pytest.raises(InvalidToken):
        manager.resolve_session(token, SessionKind.STUDENT)


def test_tokens_are_only_issued_for_existing_classrooms(manager):
    with pytest.raises(NotFound):
        manager.sessions.issue_class_token("no-such-class")


def test_classrooms_need_an_existing_school(manager):
    with pytest.raises(NotFound):
        manager.registry.create_classroom("no-such-school", 1, "A")


# -----------------------------------------------------------------------------
# Attendance / leftovers
# -----------------------------------------------------------------------------

def test_attendance_alone_earns_nothing(manager, classes):
    status = manager.register_attendance(classes[0], manager.today(), 30)
    assert status.attend == 30
    assert status.leftovers is None
    assert status.point == 0


def test_full_day_registration_earns_258(manager, classes):
    today = manager.today()
    manager.register_leftovers(classes[0], today, 0)
    status = manager.register_attendance(classes[0], today, 30)

    assert status.point == 258
    assert manager.statuses.get(classes[0], today).point == 258


def test_registration_order_does_not_matter(manager, classes):
    today = manager.today()
    a, b = classes[0], classes[1]

    manager.register_attendance(a, today, 28)
    manager.register_leftovers(a, today, 5)
    manager.register_leftovers(b, today, 5)
    manager.register_attendance(b, today, 28)

    assert manager.statuses.get(a, today).point == manager.statuses.get(b, today).point


def test_replaying_attendance_is_idempotent(manager, classes):
    today = manager.today()
    manager.register_leftovers(classes[0], today, 2)
    first = manager.register_attendance(classes[0], today, 29)
    second = manager.register_attendance(classes[0], today, 29)
    assert first.point == second.point


def test_correcting_attendance_moves_points_by_the_difference(manager, classes):
    today = manager.today()
    manager.register_leftovers(classes[0], today, 0)
    manager.register_attendance(classes[0], today, 30)      # 258
    status = manager.register_attendance(classes[0], today, 15)

    # f(15, 0) = round(515 * 0.2501) = 129
    assert status.point == 129


def test_lowering_attendance_never_drops_below_zero(manager, classes):
    today = manager.today()
    manager.statuses.upsert_leftovers(classes[0], today, 0)
    manager.statuses.upsert_attend(classes[0], today, 30)
    manager.statuses.upsert_point(classes[0], today, 5)      # f(30, 0) not yet credited

    status = manager.register_attendance(classes[0], today, 0)
    assert status.point == 0


def test_upsert_touches_only_its_own_column(manager, classes):
    today = manager.today()
    manager.statuses.upsert_point(classes[0], today, 40)
    manager.statuses.upsert_leftovers(classes[0], today, 3)
    status = manager.statuses.upsert_attend(classes[0], today, 25)

    assert (status.point, status.attend, status.leftovers) == (40, 25, 3)


def test_negative_counts_are_rejected_without_writes(manager, classes, db):
    with pytest.raises(InvalidInput):
        manager.register_attendance(classes[0], manager.today(), -1)
    assert count_rows(db, "day_status") == 0


# -----------------------------------------------------------------------------
# Sensor reports
# -----------------------------------------------------------------------------

def test_first_sensor_report_only_records_the_time(manager, classes, clock):
    result = manager.record_sensor_sample(classes[0], _dark_empty_room())

    assert result == {"point": 0}
    assert manager.statuses.get_sensor_time(classes[0]) == clock()


def test_report_one_interval_later_earns_points(manager, classes, clock):
    manager.record_sensor_sample(classes[0], _dark_empty_room())
    clock.advance(INTERVAL_MS)
    assert manager.record_sensor_sample(classes[0], _dark_empty_room()) == {"point": 10}


def test_late_report_is_credited_for_one_interval(manager, classes, clock):
    manager.record_sensor_sample(classes[0], _dark_empty_room())
    clock.advance(2 * INTERVAL_MS)
    assert manager.record_sensor_sample(classes[0], _dark_empty_room()) == {"point": 10}


def test_retried_report_earns_nothing(manager, classes, clock):
    manager.record_sensor_sample(classes[0], _dark_empty_room())
    clock.advance(INTERVAL_MS)
    manager.record_sensor_sample(classes[0], _dark_empty_room())
    assert manager.record_sensor_sample(classes[0], _dark_empty_room()) == {"point": 10}


def test_sensor_points_add_to_attendance_points(manager, classes, clock):
    today = manager.today()
    manager.register_leftovers(classes[0], today, 0)
    manager.register_attendance(classes[0], today, 30)

    manager.record_sensor_sample(classes[0], _dark_empty_room())
    clock.advance(INTERVAL_MS)
    assert manager.record_sensor_sample(classes[0], _dark_empty_room()) == {"point": 268}

    # a later attendance correction keeps the sensor points
    status = manager.register_attendance(classes[0], today, 30)
    assert status.point == 268


def test_points_never_go_negative_over_many_reports(manager, classes, clock):
    hot = SensorReading(temperature=38, humidity=90, is_people=True, lux=500, use_air_conditioner=True)
    for _ in range(5):
        result = manager.record_sensor_sample(classes[0], hot)
        clock.advance(INTERVAL_MS)
        assert result["point"] >= 0


def test_failed_point_write_rolls_back_sensor_time(manager, classes, clock, monkeypatch):
    manager.record_sensor_sample(classes[0], _dark_empty_room())
    first_time = manager.statuses.get_sensor_time(classes[0])
    clock.advance(INTERVAL_MS)

    def broken_write(*args, **kwargs):
        raise StorageFailure()

    monkeypatch.setattr(manager.statuses, "upsert_point", broken_write)
    with pytest.raises(StorageFailure):
        manager.record_sensor_sample(classes[0], _dark_empty_room())

    assert manager.statuses.get_sensor_time(classes[0]) == first_time
    monkeypatch.undo()

    # the retry still gets the full interval
    assert manager.record_sensor_sample(classes[0], _dark_empty_room()) == {"point": 10}


def test_reports_after_midnight_start_a_new_day(manager, classes, clock):
    clock.current = clock.current.replace(hour=23, minute=59, second=30)
    manager.record_sensor_sample(classes[0], _dark_empty_room())
    yesterday = manager.today()

    clock.advance(INTERVAL_MS)
    manager.record_sensor_sample(classes[0], _dark_empty_room())

    assert manager.today() == yesterday + timedelta(days=1)
    assert manager.statuses.get(classes[0], manager.today()).point == 10


def test_sensor_log_line_includes_air_conditioner(manager, classes, caplog):
    sample = SensorReading(temperature=30, humidity=70, is_people=True, lux=300, use_air_conditioner=True)
    with caplog.at_level(logging.INFO, logger="classpoint.services.score_manager"):
        manager.record_sensor_sample(classes[0], sample)

    [line] = [r.getMessage() for r in caplog.records if r.getMessage().startswith("[SENSOR]")]
    assert "people=True" in line
    assert "ac=True" in line


def test_report_time_is_read_inside_the_transaction(db, clock, classes):
    seen = []

    def watching_clock():
        seen.append(db._conn.in_transaction)
        return clock()

    manager = ScoreManager(db, sensor_interval_ms=INTERVAL_MS, tz=TZ, clock=watching_clock)
    manager.record_sensor_sample(classes[0], _dark_empty_room())

    assert seen == [True]


# -----------------------------------------------------------------------------
# Concurrency
# -----------------------------------------------------------------------------

class TickingClock:
    """Every read moves time forward by one sensor interval."""

    def __init__(self, start):
        self.current = start
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.current += timedelta(milliseconds=INTERVAL_MS)
            return self.current


def test_sensor_reports_racing_attendance_keep_every_point(db, clock, classes, monkeypatch):
    manager = ScoreManager(db, sensor_interval_ms=INTERVAL_MS, tz=TZ, clock=TickingClock(clock()))
    class_id = classes[0]
    today = manager.today()
    manager.register_leftovers(class_id, today, 0)

    written = []
    replace = manager.statuses.replace_sensor_time

    def recording_replace(cid, when):
        written.append(when)
        replace(cid, when)

    monkeypatch.setattr(manager.statuses, "replace_sensor_time", recording_replace)

    reports, registrations = 20, 5
    barrier = threading.Barrier(reports + registrations)
    errors = []

    def run(action):
        barrier.wait()
        try:
            action()
        except Exception as e:
            errors.append(e)

    threads = [
        threading.Thread(target=run, args=(lambda: manager.record_sensor_sample(class_id, _dark_empty_room()),))
        for _ in range(reports)
    ] + [
        threading.Thread(target=run, args=(lambda: manager.register_attendance(class_id, today, 30),))
        for _ in range(registrations)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    # 258 from the registrations, 10 for every report after the first
    assert manager.statuses.get(class_id, today).point == 258 + 10 * (reports - 1)
    assert len(written) == reports
    assert written == sorted(written)
    assert len(set(written)) == reports
    assert manager.statuses.get_sensor_time(class_id) == written[-1]


# -----------------------------------------------------------------------------
# Ranking
# -----------------------------------------------------------------------------

def test_rank_ties_keep_fetch_order(manager, classes):
    today = manager.today()
    a, b, c = classes
    for class_id, point in ((a, 50), (b, 50), (c, 30)):
        manager.statuses.upsert_point(class_id, today, point)

    assert manager.compute_rank(b) == {"point": 50, "rank": 2, "class_count": 3}
    assert manager.compute_rank(a)["rank"] == 1
    assert manager.compute_rank(c)["rank"] == 3


def test_class_without_status_today_is_last(manager, classes, school):
    today = manager.today()
    manager.statuses.upsert_point(classes[0], today, 12)
    manager.statuses.upsert_point(classes[1], today - timedelta(days=1), 999)
    newcomer = manager.registry.create_classroom(school, 6, "A")

    assert manager.compute_rank(newcomer) == {"point": 0, "rank": 4, "class_count": 4}
    assert manager.compute_rank(classes[1]) == {"point": 0, "rank": 4, "class_count": 4}


def test_rank_only_counts_the_same_school(manager, classes):
    other_school = manager.registry.create_school("Kita Elementary")
    rival = manager.registry.create_classroom(other_school, 5, "A")
    today = manager.today()
    manager.statuses.upsert_point(rival, today, 1000)
    manager.statuses.upsert_point(classes[0], today, 1)

    assert manager.compute_rank(classes[0]) == {"point": 1, "rank": 1, "class_count": 3}


def test_rank_of_unknown_class_is_not_found(manager):
    with pytest.raises(NotFound):
        manager.compute_rank("no-such-class")


# -----------------------------------------------------------------------------
# Read-only views
# -----------------------------------------------------------------------------

def test_today_status_defaults_to_empty(manager, classes):
    status = manager.today_status(classes[0])
    assert (status.point, status.attend, status.leftovers) == (0, None, None)
    assert status.date == manager.today()


def test_history_covers_the_last_30_days(manager, classes):
    today = manager.today()
    for days_ago in (0, 1, 29, 30, 45):
        manager.statuses.upsert_point(classes[0], today - timedelta(days=days_ago), days_ago)

    history = manager.status_history(classes[0])
    assert [s.point for s in history] == [29, 1, 0]
