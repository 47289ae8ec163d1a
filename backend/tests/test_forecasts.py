from datetime import date

import pytest

from backend.services.forecasts import (
    all_forecasts,
    forecast_statistics,
    forecasts_by_agency,
    forecasts_by_naics,
    forecasts_for_agencies,
    upcoming_forecasts,
)


def test_forecasts_by_naics_falls_back_to_prefix(store):
    assert {f.id for f in forecasts_by_naics(store, "541330")} == {"FC-NAVSEA-001", "FC-USACE-002", "FC-DHS-001"}
    assert {f.id for f in forecasts_by_naics(store, "541339")} == {"FC-NAVSEA-001", "FC-USACE-002", "FC-DHS-001"}
    assert forecasts_by_naics(store, "") == []


def test_forecasts_by_agency(store):
    ids = [f.id for f in forecasts_by_agency(store, "Naval Facilities Engineering Systems Command")]
    assert ids == ["FC-NAVFAC-001", "FC-NAVFAC-002"]
    assert forecasts_by_agency(store, "") == []


def test_forecasts_for_agencies_falls_back_to_naics_matches(store):
    results = forecasts_for_agencies(store, ["Naval Facilities Engineering Systems Command"], "541330")
    assert [f.id for f in results] == ["FC-DHS-001", "FC-NAVSEA-001", "FC-USACE-002"]


def test_set_aside_only_narrows_when_something_is_left(store):
    hubzone = forecasts_for_agencies(store, ["U.S. Army Corps of Engineers"], set_aside="HUBZone")
    assert [f.id for f in hubzone] == ["FC-USACE-001"]
    unmatched = forecasts_for_agencies(store, ["U.S. Army Corps of Engineers"], set_aside="Women Owned")
    assert [f.id for f in unmatched] == ["FC-USACE-001", "FC-USACE-002"]


def test_statistics_and_upcoming(store):
    stats = forecast_statistics(forecasts_by_naics(store, "541330"))
    assert stats.total_value == 749_000_000
    assert stats.total_forecasts == 3
    assert stats.average_value == pytest.approx(749_000_000 / 3)
    assert stats.set_aside_counts == {"": 2, "Service Disabled Veteran": 1}
    assert forecast_statistics([]).average_value == 0.0

    upcoming = upcoming_forecasts(all_forecasts(store), limit=3, today=date(2026, 1, 1))
    assert [f.id for f in upcoming] == ["FC-NAVFAC-002", "FC-DISA-001", "FC-VA-002"]
