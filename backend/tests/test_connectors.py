"""Tests for the USAspending connector."""
from __future__ import annotations

import requests

from backend.connectors.usaspending import (
    PAGE_LIMIT,
    PROBE_FIELDS,
    SearchFilters,
    TimePeriod,
    build_request_payload,
    coerce_offers,
    fetch_award_pages,
    probe_award_count,
)
from backend.tests.fakes import FakeResponse, FakeSession, award_row


def _filters(**kwargs) -> SearchFilters:
    return SearchFilters(time_period=[TimePeriod(start_date="2022-10-01", end_date="2025-09-30")], **kwargs)


def test_payload_drops_unset_filters():
    payload = build_request_payload(_filters(naics_codes=["541512"]), page=3)
    assert payload["page"] == 3
    assert payload["limit"] == PAGE_LIMIT
    assert payload["sort"] == "Award Amount" and payload["order"] == "desc"
    assert payload["filters"]["naics_codes"] == ["541512"]
    assert payload["filters"]["award_type_codes"] == ["A", "B", "C", "D"]
    assert "set_aside_type_codes" not in payload["filters"]
    assert "place_of_performance_locations" not in payload["filters"]


def test_without_clears_only_named_filters():
    filters = _filters(naics_codes=["541512"], set_aside_type_codes=["WOSB"])
    relaxed = filters.without("set_aside_type_codes")
    assert relaxed.set_aside_type_codes is None
    assert relaxed.naics_codes == ["541512"]
    assert filters.set_aside_type_codes == ["WOSB"]


def test_fetch_stops_on_short_page():
    pages = {1: [award_row("A", i) for i in range(PAGE_LIMIT)], 2: [award_row("B", 1.0)]}
    session = FakeSession(lambda payload: pages.get(payload["page"], []))
    sleeps = []

    rows = fetch_award_pages(_filters(), max_pages=5, session=session, sleep=sleeps.append, page_delay=0.25)
    assert len(rows) == PAGE_LIMIT + 1
    assert [call["page"] for call in session.calls] == [1, 2]
    assert sleeps == [0.25]


def test_fetch_respects_page_budget():
    session = FakeSession(lambda payload: [award_row("A", i) for i in range(PAGE_LIMIT)])
    rows = fetch_award_pages(_filters(), max_pages=2, session=session, sleep=lambda s: None)
    assert len(rows) == 2 * PAGE_LIMIT
    assert len(session.calls) == 2


def test_fetch_keeps_rows_before_failure():
    def responder(payload):
        if payload["page"] == 1:
            return [award_row("A", i) for i in range(PAGE_LIMIT)]
        return FakeResponse(status_code=500, payload={})

    rows = fetch_award_pages(_filters(), max_pages=3, session=FakeSession(responder), sleep=lambda s: None)
    assert len(rows) == PAGE_LIMIT


def test_fetch_tolerates_network_errors_and_bad_bodies():
    boom = FakeSession(lambda payload: requests.ConnectionError("down"))
    assert fetch_award_pages(_filters(), max_pages=2, session=boom) == []

    junk = FakeSession(lambda payload: FakeResponse(payload=ValueError("not json")))
    assert fetch_award_pages(_filters(), max_pages=2, session=junk) == []

    missing = FakeSession(lambda payload: FakeResponse(payload={"page_metadata": {}}))
    assert fetch_award_pages(_filters(), max_pages=2, session=missing) == []


def test_probe_counts_first_page_only():
    session = FakeSession(lambda payload: [{"Award ID": str(i)} for i in range(7)])
    assert probe_award_count(_filters(), session=session) == 7
    assert session.calls[0]["fields"] == PROBE_FIELDS
    assert session.calls[0]["page"] == 1

    failing = FakeSession(lambda payload: FakeResponse(status_code=503, payload={}))
    assert probe_award_count(_filters(), session=failing) is None


def test_coerce_offers():
    assert coerce_offers("12") == 12
    assert coerce_offers(3.9) == 3
    assert coerce_offers("-2") is None
    assert coerce_offers("n/a") is None
    assert coerce_offers(True) is None
