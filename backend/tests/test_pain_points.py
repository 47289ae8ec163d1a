from backend.services.pain_points import (
    GENERAL_CAPABILITY,
    SelectedAgency,
    categorize_pain_points,
    component_agencies_of,
    find_agencies_by_pain_point,
    generate_agency_needs,
    get_pain_points_for_agency,
    get_pain_points_for_command,
    ndaa_pain_points,
    parent_agency_of,
    similar_agencies,
)


def test_command_entry_preferred(store):
    points = get_pain_points_for_agency(store, "Department of the Navy", "NAVFAC")
    assert points == list(store.pain_points["agencies"]["NAVFAC"])


def test_component_agency_inherits_parent(store):
    assert parent_agency_of(store, "U.S. Coast Guard") == "Department of Homeland Security"
    assert "U.S. Coast Guard" in component_agencies_of(store, "Department of Homeland Security")
    points = get_pain_points_for_agency(store, "U.S. Coast Guard")
    assert points == list(store.pain_points["agencies"]["Department of Homeland Security"])


def test_usace_district_offices(store):
    points = get_pain_points_for_agency(store, "U.S. Army Engineer District, Omaha")
    assert points[0] == "Missouri River levee system rehabilitation"
    assert get_pain_points_for_agency(store, "Office of Nothing In Particular") == []
    assert get_pain_points_for_agency(store, None) == []


def test_command_chain_records_source(store):
    points, source = get_pain_points_for_command(
        store, "NAVFAC Washington", "Department of the Navy", "Department of Defense"
    )
    assert source == "NAVFAC"
    assert points == list(store.pain_points["agencies"]["NAVFAC"])

    points, source = get_pain_points_for_command(store, "Mystery Office", "", "Department of Energy")
    assert source == "Department of Energy"

    assert get_pain_points_for_command(store, "", None, "") == ([], "")


def test_keyword_search_and_ndaa_filter(store):
    matches = find_agencies_by_pain_point(store, "microgrid")
    assert "NAVFAC" in [m.agency for m in matches]
    assert find_agencies_by_pain_point(store, "   ") == []

    ndaa = ndaa_pain_points(store, "NAVFAC")
    assert ndaa and all("FY2026 NDAA" in p for p in ndaa)


def test_similar_agencies_excludes_target(store):
    similar = similar_agencies(store, "NAVFAC", limit=3)
    assert len(similar) <= 3
    assert all(s.agency != "NAVFAC" for s in similar)
    assert [s.similarity for s in similar] == sorted((s.similarity for s in similar), reverse=True)


def test_categorize_pain_points():
    categories = categorize_pain_points(
        [
            "Zero trust architecture rollout",
            "Aging facility backlog",
            "Cloud migration of legacy systems",
            "Regulation changes in the NDAA",
            "Recruiting shortfalls",
        ]
    )
    assert categories["cybersecurity"] == ["Zero trust architecture rollout"]
    assert categories["infrastructure"] == ["Aging facility backlog"]
    assert categories["modernization"] == ["Cloud migration of legacy systems"]
    assert categories["compliance"] == ["Regulation changes in the NDAA"]
    assert categories["other"] == ["Recruiting shortfalls"]


def test_agency_needs_put_ndaa_first(store):
    selected = [
        SelectedAgency(name="NAVFAC Washington", contracting_office="NAVFAC Washington", command="NAVFAC"),
        SelectedAgency(name="Unmatched", contracting_office="Nowhere Office"),
    ]
    needs = generate_agency_needs(store, selected, naics_code="236220", business_type="HUBZone")

    assert needs
    assert len(needs) <= 40
    assert "FY2026 NDAA" in needs[0].requirement
    assert needs[0].positioning.startswith("Strategic priority:")
    assert all(n.agency == "NAVFAC Washington" and n.pain_point_source == "NAVFAC" for n in needs)
    assert needs[0].command == "NAVFAC"
    assert needs[0].capability_match == "Infrastructure development and management"
    # kept only for being critical, so no specific capability applies
    general = [n for n in needs if n.capability_match == GENERAL_CAPABILITY]
    assert [n.requirement for n in general] == ["Critical need for environmental restoration at legacy base sites"]
    assert general[0].positioning.startswith("Identify how your capabilities")
