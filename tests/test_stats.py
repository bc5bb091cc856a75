"""Tests for the statistics aggregator."""

from schemas.contact_schema import RowHandle
from services.row_normalizer import ContactRecord
from services.stats import UNKNOWN_STATE, compute_stats


def _record(row, **fields):
    record = ContactRecord(row=RowHandle(row))
    record.apply_updates(fields)
    return record


COMPLETE = dict(firstname="A", contact_phone="0123456789", zip="50000", address="x")


class TestComputeStats:
    """Tests for compute_stats()."""

    def test_empty(self):
        """No records gives zeros, never a division error."""
        stats = compute_stats([])
        assert stats["total"] == 0
        assert stats["peratusan"] == 0
        assert stats["byNegeri"] == []
        assert stats["byGroup"]["personal"]["avgCompletion"] == 0
        assert all(f["fillRate"] == 0 for f in stats["byField"])

    def test_completion_counts(self):
        """Complete and incomplete counts add up to the total."""
        records = [
            _record(2, state="Johor", **COMPLETE),
            _record(3, state="Johor", firstname="B"),
            _record(4, firstname="C"),
        ]
        stats = compute_stats(records)
        assert stats["total"] == 3
        assert stats["lengkap"] == 1
        assert stats["tidakLengkap"] == 2
        assert stats["peratusan"] == 33

    def test_state_breakdown_sorted(self):
        """States are counted and sorted by count, blanks become unknown."""
        records = [
            _record(2, firstname="A", state="Perak"),
            _record(3, firstname="B", state="Johor"),
            _record(4, firstname="C", state="Johor"),
            _record(5, firstname="D"),
        ]
        by_negeri = compute_stats(records)["byNegeri"]
        assert by_negeri[0] == {"negeri": "Johor", "total": 2}
        assert {"negeri": UNKNOWN_STATE, "total": 1} in by_negeri
        assert [s["negeri"] for s in by_negeri[1:]] == ["Perak", UNKNOWN_STATE]

    def test_field_fill_rate(self):
        """Fill rate is a rounded percentage per field."""
        records = [_record(2, firstname="A", email="a@b.co"), _record(3, firstname="B")]
        by_field = {f["key"]: f for f in compute_stats(records)["byField"]}
        assert len(by_field) == 42
        assert by_field["firstname"]["fillRate"] == 100
        assert by_field["email"] == {
            "key": "email",
            "label": "Email",
            "group": "personal",
            "fillRate": 50,
            "filled": 1,
            "total": 2,
        }

    def test_group_average(self):
        """Group completion is averaged over records."""
        records = [
            _record(2, firstname="A", lastname="B", email="c@d.co", contact_phone="0123456789"),
            _record(3, firstname="E"),
        ]
        personal = compute_stats(records)["byGroup"]["personal"]
        assert personal["label"] == "Personal Info"
        # (100 + 25) / 2
        assert personal["avgCompletion"] == 62
