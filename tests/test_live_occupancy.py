from datetime import datetime, timedelta, timezone

from domain.models import Appointment, Pass, User, Visitor
from domain.services.occupancy import UNKNOWN_BUILDING, classify, compute_live_occupancy

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_pass(**kwargs) -> Pass:
    kwargs.setdefault("pass_number", "PASS-1714564800000-1")
    kwargs.setdefault("qr_data", "{}")
    return Pass(**kwargs)


def by_name(result):
    return {b.building: b for b in result.buildings}


def test_no_active_passes_yields_no_buildings():
    result = compute_live_occupancy([], NOW)

    assert result.buildings == []
    assert result.generated_at == NOW


def test_buckets_per_building():
    passes = [
        make_pass(building="A", valid_to=NOW + timedelta(minutes=10)),
        make_pass(building="A", valid_to=NOW - timedelta(minutes=5)),
        make_pass(building="B", valid_to=None),
    ]

    buildings = by_name(compute_live_occupancy(passes, NOW))

    a = buildings["A"]
    assert (a.total, a.on_time, a.approaching_exit, a.overstay) == (2, 0, 1, 1)
    b = buildings["B"]
    assert (b.total, b.on_time, b.approaching_exit, b.overstay) == (1, 1, 0, 0)


def test_missing_building_goes_to_unknown():
    result = compute_live_occupancy([make_pass(building=None)], NOW)

    assert [b.building for b in result.buildings] == [UNKNOWN_BUILDING]
    assert result.buildings[0].total == 1


def test_buildings_keep_first_seen_order():
    passes = [make_pass(building=name) for name in ("Lab", "HQ", "Lab", "Annex")]

    result = compute_live_occupancy(passes, NOW)

    assert [b.building for b in result.buildings] == ["Lab", "HQ", "Annex"]
    assert [b.total for b in result.buildings] == [2, 1, 1]


def test_expected_exit_time_used_when_valid_to_missing():
    access_pass = make_pass(building="A", expected_exit_time=NOW + timedelta(minutes=15))

    building = compute_live_occupancy([access_pass], NOW).buildings[0]

    assert building.approaching_exit == 1
    assert building.visitors[0].expected_exit == NOW + timedelta(minutes=15)


def test_valid_to_takes_precedence_over_expected_exit_time():
    access_pass = make_pass(
        valid_to=NOW + timedelta(hours=2),
        expected_exit_time=NOW - timedelta(minutes=1),
    )

    building = compute_live_occupancy([access_pass], NOW).buildings[0]

    assert building.on_time == 1
    assert building.overstay == 0


def test_classify_boundaries():
    assert classify(None, NOW) == "onTime"
    assert classify(NOW, NOW) == "overstay"
    assert classify(NOW - timedelta(seconds=1), NOW) == "overstay"
    assert classify(NOW + timedelta(seconds=1), NOW) == "approachingExit"
    assert classify(NOW + timedelta(minutes=30), NOW) == "approachingExit"
    assert classify(NOW + timedelta(minutes=30, seconds=1), NOW) == "onTime"


def test_classify_custom_window_with_naive_stored_exit():
    # SQLite hands timestamps back without tzinfo
    stored = NOW.replace(tzinfo=None) + timedelta(minutes=45)

    assert classify(stored, NOW, approaching_exit_minutes=60) == "approachingExit"
    assert classify(stored, NOW) == "onTime"


def test_classify_converts_offsets_to_utc():
    exit_in_madrid = datetime(2024, 5, 1, 14, 10, tzinfo=timezone(timedelta(hours=2)))

    assert classify(exit_in_madrid, NOW) == "approachingExit"


def test_visitor_details():
    host = User(name="Erin Employee", email="erin@example.com")
    visitor = Visitor(name="Maria Gonzalez")
    appointment = Appointment(
        visitor_id=visitor.id,
        host_id=host.id,
        scheduled_at=NOW,
        purpose="Quarterly review",
    )
    entry = NOW - timedelta(minutes=40)
    access_pass = make_pass(
        building="HQ",
        valid_to=NOW + timedelta(hours=1),
        entry_time=entry,
        visitor=visitor,
        host=host,
        appointment=appointment,
    )

    detail = compute_live_occupancy([access_pass], NOW).buildings[0].visitors[0]

    assert detail.id == access_pass.id
    assert detail.name == "Maria Gonzalez"
    assert detail.host == "Erin Employee"
    assert detail.purpose == "Quarterly review"
    assert detail.entry_time == entry
    assert detail.category == "onTime"


def test_serialized_keys_are_camel_case():
    result = compute_live_occupancy([make_pass(building="A", valid_to=NOW)], NOW)

    body = result.model_dump(by_alias=True)

    assert set(body) == {"generatedAt", "buildings"}
    assert set(body["buildings"][0]) == {
        "building", "total", "onTime", "approachingExit", "overstay", "visitors",
    }
    assert body["buildings"][0]["visitors"][0]["category"] == "overstay"


def test_naive_timestamps_are_reported_as_utc():
    stored = NOW.replace(tzinfo=None) + timedelta(minutes=10)

    result = compute_live_occupancy([make_pass(building="A", valid_to=stored)], NOW)
    body = result.model_dump(mode="json", by_alias=True)

    assert body["generatedAt"] in ("2024-05-01T12:00:00Z", "2024-05-01T12:00:00+00:00")
    assert body["buildings"][0]["visitors"][0]["expectedExit"].startswith("2024-05-01T12:10:00")
    assert result.buildings[0].visitors[0].expected_exit.tzinfo is not None


def test_timestamp_columns_are_timezone_aware():
    for column in ("valid_from", "valid_to", "expected_exit_time", "entry_time", "exit_time", "created_at", "updated_at"):
        assert Pass.__table__.c[column].type.timezone is True, column
