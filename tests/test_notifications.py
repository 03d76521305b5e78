"""Herd notification ranking and worklists."""

from datetime import date, timedelta

import pytest

from app.services.herd import cows_needing_insemination, paginate, upcoming_calvings
from app.services.notifications import (
    HerdAnimal,
    calving_notice,
    insemination_notice,
    rank_notifications,
    summarize_notifications,
)

NOW = date(2024, 6, 1)


def pregnant(tag, days_until_calving, name=None):
    """Cow whose expected calving is `days_until_calving` days from NOW."""
    insem = NOW - timedelta(days=283 - days_until_calving)
    return HerdAnimal(cow_id=tag, name=name, last_insemination_date=insem, last_calving_date=insem - timedelta(days=80))


def open_cow(tag, days_since_calving, name=None):
    return HerdAnimal(cow_id=tag, name=name, last_calving_date=NOW - timedelta(days=days_since_calving))


class TestCalvingNotice:

    def test_overdue_is_high(self):
        n = calving_notice(pregnant("A", -2), NOW)
        assert n.type == "calving_due_soon"
        assert n.priority == "high"
        assert n.is_overdue
        assert n.days_remaining == -2
        assert "overdue" in n.message

    def test_due_soon_is_medium(self):
        n = calving_notice(pregnant("B", 5), NOW)
        assert n.priority == "medium"
        assert n.expected_calving_date == NOW + timedelta(days=5)

    def test_due_today_message(self):
        n = calving_notice(pregnant("B", 0, name="Molly"), NOW)
        assert n.priority == "medium"
        assert n.message == "Cow B (Molly) is due to calve today"

    def test_within_thirty_days_is_low(self):
        assert calving_notice(pregnant("C", 30), NOW).priority == "low"

    def test_far_from_calving_yields_nothing(self):
        assert calving_notice(pregnant("D", 31), NOW) is None

    def test_closed_cycle_yields_nothing(self):
        cow = HerdAnimal(cow_id="X", last_insemination_date=date(2023, 1, 1), actual_calving_date=date(2023, 10, 10))
        assert calving_notice(cow, NOW) is None


class TestInseminationNotice:

    def test_past_window_is_high(self):
        n = insemination_notice(open_cow("E", 100), NOW)
        assert n.type == "insemination_due"
        assert n.priority == "high"
        assert n.is_overdue
        assert n.days_since_calving == 100

    def test_in_window_is_medium(self):
        n = insemination_notice(open_cow("F", 60), NOW)
        assert n.priority == "medium"
        assert n.is_in_window

    def test_approaching_within_a_week_is_low(self):
        n = insemination_notice(open_cow("G", 45), NOW)
        assert n.priority == "low"
        assert n.is_approaching
        assert n.days_until_ideal == 5

    def test_fresh_cow_yields_nothing(self):
        assert insemination_notice(open_cow("H", 10), NOW) is None

    def test_never_calved_yields_nothing(self):
        assert insemination_notice(HerdAnimal(cow_id="I"), NOW) is None

    def test_pregnant_cow_yields_nothing(self):
        assert insemination_notice(pregnant("P", 100), NOW) is None

    def test_closed_cycle_returns_to_window(self):
        cow = HerdAnimal(
            cow_id="R",
            last_insemination_date=date(2023, 5, 1),
            actual_calving_date=NOW - timedelta(days=60),
            last_calving_date=NOW - timedelta(days=60),
        )
        assert insemination_notice(cow, NOW).priority == "medium"


class TestRankNotifications:

    def test_grouped_by_priority_with_stable_order(self):
        herd = [
            pregnant("C", 20),
            open_cow("E", 100),
            pregnant("B", 5),
            open_cow("F", 60),
            pregnant("A", -2),
            open_cow("G", 45),
            pregnant("D", 100),
            open_cow("H", 10),
            HerdAnimal(cow_id="I"),
        ]
        ranked = rank_notifications(herd, NOW)
        assert [(n.tag_number, n.priority) for n in ranked] == [
            ("E", "high"),
            ("A", "high"),
            ("B", "medium"),
            ("F", "medium"),
            ("C", "low"),
            ("G", "low"),
        ]

    def test_accepts_iso_now(self):
        assert len(rank_notifications([open_cow("E", 100)], "2024-06-01")) == 1

    def test_empty_herd(self):
        assert rank_notifications([], NOW) == []

    def test_summary_counts(self):
        ranked = rank_notifications([open_cow("E", 100), pregnant("A", -2), open_cow("F", 60)], NOW)
        assert summarize_notifications(ranked) == {"high": 2, "medium": 1, "low": 0, "total": 3}

    def test_as_dict_is_json_ready(self):
        d = rank_notifications([pregnant("B", 5)], NOW)[0].as_dict()
        assert d["expected_calving_date"] == "2024-06-06"
        assert d["last_calving_date"] is None
        assert d["tag_number"] == "B"


class TestWorklists:

    def test_upcoming_calvings_sorted_by_expected_date(self):
        herd = [pregnant("late", 90), open_cow("open", 60), pregnant("soon", 3), pregnant("over", -4)]
        rows = upcoming_calvings(herd, NOW)
        assert [r["cow_id"] for r in rows] == ["over", "soon", "late"]
        assert rows[0]["progress"]["status"] == "overdue"
        assert rows[1]["days_remaining"] == 3
        assert rows[1]["progress"]["status"] == "due_soon"

    def test_needing_insemination_orders_by_urgency(self):
        herd = [open_cow("a", 20), open_cow("b", 95), open_cow("c", 60), open_cow("d", 120), pregnant("p", 50), open_cow("e", 70)]
        rows = cows_needing_insemination(herd, NOW)
        assert [r["cow_id"] for r in rows] == ["d", "b", "e", "c", "a"]
        assert rows[0]["is_overdue"] is True
        assert rows[-1]["status"] == "approaching"
        assert rows[-1]["days_until_ideal"] == 30

    def test_never_calved_is_skipped(self):
        assert cows_needing_insemination([HerdAnimal(cow_id="heifer")], NOW) == []


class TestPaginate:

    def test_pages(self):
        result = paginate(list(range(60)), page=2, per_page=25)
        assert result["items"] == list(range(25, 50))
        assert result["count"] == 60
        assert result["last_page"] == 3
        assert result["current_page"] == 2

    @pytest.mark.parametrize("page,expected", [(0, 1), (99, 3)])
    def test_page_is_clamped(self, page, expected):
        assert paginate(list(range(60)), page=page, per_page=25)["current_page"] == expected

    def test_empty(self):
        result = paginate([], page=1, per_page=25)
        assert result["items"] == []
        assert result["last_page"] == 1
