"""Tests for the domain record model."""

from dwell.storage.records import DomainRecord, store_from_dict, store_to_dict


def test_add_credits_every_resolution():
    record = DomainRecord()
    record.add("2024-01-01-12", "2024-01-01", "2024-W01", 5)
    record.add("2024-01-01-13", "2024-01-01", "2024-W01", 2)

    assert record.total_time == 7
    assert record.hourly == {"2024-01-01-12": 5, "2024-01-01-13": 2}
    assert record.daily == {"2024-01-01": 7}
    assert record.weekly == {"2024-W01": 7}
    assert record.sessions == []


def test_wire_names():
    record = DomainRecord(total_time=3, daily={"2024-01-01": 3})

    assert record.to_dict() == {
        "totalTime": 3,
        "sessions": [],
        "hourlyData": {},
        "dailyData": {"2024-01-01": 3},
        "weeklyData": {},
    }


def test_from_dict_defaults_missing_fields():
    """Imported records may lack sessions or buckets."""
    record = DomainRecord.from_dict({"totalTime": 10})

    assert record.total_time == 10
    assert record.hourly == {}
    assert record.sessions == []


def test_from_dict_copies_sessions():
    sessions = [{"start": 1}]
    record = DomainRecord.from_dict({"totalTime": 0, "sessions": sessions})
    record.sessions[0]["start"] = 2

    assert sessions == [{"start": 1}]


def test_store_conversion():
    data = {"a.com": {"totalTime": 1, "dailyData": {"2024-01-01": 1}}}
    store = store_from_dict(data)

    assert store["a.com"].daily == {"2024-01-01": 1}
    assert store_to_dict(store)["a.com"]["totalTime"] == 1
