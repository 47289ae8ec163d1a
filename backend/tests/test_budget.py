import pytest

from backend.services.budget import (
    build_budget_checkup,
    classify_trend,
    get_budget_for_agency,
    normalize_agency_name,
    winners_and_losers,
)


@pytest.mark.parametrize(
    "ratio,trend",
    [(1.25, "surging"), (1.07, "growing"), (1.0, "stable"), (0.97, "stable"), (0.9, "declining"), (0.5, "cut")],
)
def test_classify_trend(ratio, trend):
    assert classify_trend(ratio) == trend


def test_normalize_agency_name():
    assert normalize_agency_name("The  Department of Energy") == "department of energy"
    assert normalize_agency_name("Department of Homeland Security (DHS)") == "department of homeland security"


def test_budget_lookup(store):
    assert get_budget_for_agency(store, "Department of Defense").toptier_code == "097"
    assert get_budget_for_agency(store, "Department of Homeland Security (DHS)").agency == (
        "Department of Homeland Security"
    )
    assert get_budget_for_agency(store, "the department of energy").agency == "Department of Energy"
    assert get_budget_for_agency(store, "Department of Magic") is None
    assert get_budget_for_agency(store, "  ") is None


def test_winners_and_losers(store):
    ranked = winners_and_losers(store, limit=3)
    assert ranked["winners"][0].agency == "Department of Homeland Security"
    assert ranked["losers"][0].agency == "Department of Education"
    assert len(ranked["winners"]) == 3
    assert all(b.change.percent > 1 for b in ranked["winners"])


def test_budget_checkup(store):
    checkup = build_budget_checkup(store, ["Department of Defense", "Department of Education"])
    assert checkup.summary.agencies_growing == 1
    assert checkup.summary.agencies_declining == 1
    assert checkup.summary.biggest_winner == "Department of Defense"
    assert checkup.summary.biggest_loser == "Department of Education"
    assert checkup.summary.total_fy2025 == pytest.approx(1_130_700_000_000)
    assert checkup.recommendations[0] == "Department of Defense budget grew +7.8%: prioritize outreach"
    assert checkup.recommendations[1] == (
        "Department of Education budget cut -72.1%: expect fewer new contracts, focus on recompetes"
    )
    assert len(checkup.recommendations) == 6


def test_budget_checkup_without_data(store):
    assert build_budget_checkup(store, ["Bureau of Nothing"]) is None
