"""
Tests for dashboard aggregation (lib/dashboard.py).
"""

from datetime import date

import pytest

from lib.capture import capture_record
from lib.dashboard import (
    build_dashboard,
    month_change_pct,
    month_key,
    shift_month,
    usage_by_antimicrobial,
    usage_by_month,
)
from tests.factories import TODAY, farm_payload, lab_payload, treatment_payload


class TestMonthHelpers:
    def test_month_key(self):
        assert month_key(date(2025, 3, 15)) == "2025-03"

    @pytest.mark.parametrize(
        "d, months, expected",
        [
            (date(2025, 3, 15), -1, date(2025, 2, 1)),
            (date(2025, 1, 31), -1, date(2024, 12, 1)),
            (date(2025, 12, 5), 1, date(2026, 1, 1)),
            (date(2025, 3, 15), -14, date(2024, 1, 1)),
            (date(2025, 3, 15), 0, date(2025, 3, 1)),
        ],
    )
    def test_shift_month(self, d, months, expected):
        assert shift_month(d, months) == expected

    def test_month_change_pct(self):
        assert month_change_pct(3, 2) == 50.0
        assert month_change_pct(2, 3) == -33.3
        assert month_change_pct(4, 4) == 0.0

    def test_month_change_pct_no_previous(self):
        assert month_change_pct(5, 0) is None


class TestSeries:
    def test_usage_by_antimicrobial_order(self):
        treatments = [
            {"antimicrobial": "Florfenicol"},
            {"antimicrobial": "Oxytetracycline"},
            {"antimicrobial": "Enrofloxacin"},
            {"antimicrobial": "Oxytetracycline"},
        ]
        assert usage_by_antimicrobial(treatments) == [
            {"label": "Oxytetracycline", "value": 2},
            {"label": "Enrofloxacin", "value": 1},
            {"label": "Florfenicol", "value": 1},
        ]

    def test_usage_by_antimicrobial_empty(self):
        assert usage_by_antimicrobial([]) == []

    def test_usage_by_month_zero_filled(self):
        treatments = [{"start_date": "2025-01-20"}, {"start_date": "2025-03-02"}]
        series = usage_by_month(treatments, TODAY, months=4)
        assert series == [
            {"label": "2024-12", "value": 0},
            {"label": "2025-01", "value": 1},
            {"label": "2025-02", "value": 0},
            {"label": "2025-03", "value": 1},
        ]

    def test_usage_by_month_ignores_older(self):
        series = usage_by_month([{"start_date": "2023-01-01"}], TODAY, months=2)
        assert all(p["value"] == 0 for p in series)


class TestBuildDashboard:
    @pytest.fixture
    def populated(self, store):
        farm = capture_record(store, "farms", farm_payload())
        fid = farm["id"]
        # active, clears 2025-03-28
        capture_record(store, "treatments", treatment_payload(fid))
        # cleared 2025-03-02
        capture_record(
            store,
            "treatments",
            treatment_payload(
                fid, antimicrobial="Florfenicol", start_date="2025-02-10", end_date="2025-02-15"
            ),
        )
        # active, clears 2025-03-18
        capture_record(
            store,
            "treatments",
            treatment_payload(fid, start_date="2025-02-20", end_date="2025-02-25"),
        )
        # banned, cleared 2025-01-20
        capture_record(
            store,
            "treatments",
            treatment_payload(
                fid,
                antimicrobial="Chloramphenicol",
                withdrawal_days="10",
                start_date="2025-01-05",
                end_date="2025-01-10",
            ),
        )
        capture_record(store, "lab-results", lab_payload(fid, value="250"))
        return store

    def test_counts(self, populated):
        stats = build_dashboard(populated, today=TODAY)
        assert stats["as_of"] == "2025-03-15"
        assert stats["counts"] == {
            "farms": 1,
            "treatments": 4,
            "prescriptions": 0,
            "lab-results": 1,
        }

    def test_withdrawal_figures(self, populated):
        stats = build_dashboard(populated, today=TODAY)
        assert stats["active_withdrawals"] == 2
        assert [t["clearance_date"] for t in stats["upcoming_clearances"]] == [
            "2025-03-18",
            "2025-03-28",
        ]
        assert stats["upcoming_clearances"][0]["days_remaining"] == 3

    def test_flags(self, populated):
        stats = build_dashboard(populated, today=TODAY)
        assert stats["flagged_treatments"] == 1
        assert stats["failed_lab_results"] == 1

    def test_month_over_month(self, populated):
        stats = build_dashboard(populated, today=TODAY)
        assert stats["treatments_this_month"] == 1
        assert stats["treatments_last_month"] == 2
        assert stats["month_change_pct"] == -50.0

    def test_series(self, populated):
        stats = build_dashboard(populated, today=TODAY)
        assert stats["usage_by_antimicrobial"][0] == {"label": "Oxytetracycline", "value": 2}
        assert [p["value"] for p in stats["usage_by_month"]] == [0, 0, 0, 1, 2, 1]
        assert stats["usage_by_month"][-1]["label"] == "2025-03"

    def test_status_moves_with_today(self, populated):
        later = build_dashboard(populated, today=date(2025, 4, 1))
        assert later["active_withdrawals"] == 0
        assert later["upcoming_clearances"] == []

    def test_empty_store(self, store):
        stats = build_dashboard(store, today=TODAY)
        assert stats["active_withdrawals"] == 0
        assert stats["month_change_pct"] is None
        assert stats["usage_by_antimicrobial"] == []
        assert len(stats["usage_by_month"]) == 6
