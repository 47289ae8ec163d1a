from backend.services.commands import (
    find_command_in_text,
    get_agency_info_by_parent_agency,
    get_command_info,
    get_forecast_url,
    get_service_branch_info,
    is_dod_agency,
    sam_search_url,
)
from backend.services.resolver import resolve_agency_enrichment


def test_command_lookup_by_key_abbreviation_and_name(store):
    assert get_command_info(store, "NAVFAC").key == "NAVFAC"
    assert get_command_info(store, "navfac").key == "NAVFAC"
    assert get_command_info(store, "DOC").key == "Commerce"
    assert get_command_info(store, "Naval Sea Systems Command").key == "NAVSEA"
    assert get_command_info(store, "") is None
    assert get_command_info(store, "Bureau of Imaginary Affairs") is None


def test_find_command_in_text_uses_whole_words(store):
    assert find_command_in_text(store, "DLA Troop Support Philadelphia").key == "DLA"
    assert find_command_in_text(store, "Naval Sea Systems Command Norfolk").key == "NAVSEA"
    # mixed-case abbreviations are ordinary words in office names
    assert find_command_in_text(store, "Treasury Street Office") is None
    assert find_command_in_text(store, "") is None


def test_service_branch_and_dod_checks(store):
    assert get_service_branch_info(store, "DEPT OF THE NAVY").branch == "Navy"
    assert get_service_branch_info(store, "U.S. Marine Corps Forces").branch == "Navy"
    assert get_service_branch_info(store, "Department of Commerce") is None
    assert is_dod_agency(store, "Department of the Navy")
    assert not is_dod_agency(store, "Department of Commerce")


def test_parent_agency_lookup(store):
    assert get_agency_info_by_parent_agency(store, "Department of Homeland Security").key == "DHS"
    assert get_agency_info_by_parent_agency(store, "HOMELAND SECURITY, DEPARTMENT OF").key == "DHS"
    assert get_agency_info_by_parent_agency(store, "  ") is None


def test_sam_search_url(store):
    url = sam_search_url(store, "NAVFAC Washington")
    assert url.endswith("%22NAVFAC%20Washington%22")
    assert "{keyword}" not in url
    assert sam_search_url(store, " ") == store.commands["sam_default_url"]
    assert get_forecast_url(store, "NAVFAC") == "https://www.navfac.navy.mil/Business-Lines/Small-Business/"


def test_explicit_command_wins(store):
    result = resolve_agency_enrichment(store, "Some Office", "Department of the Army", "Department of Defense", "NAVSEA")
    assert result.contact_source == "command"
    assert result.command == "NAVSEA"
    assert result.pain_points
    assert result.source == "NAVSEA"


def test_command_found_in_office_name(store):
    result = resolve_agency_enrichment(store, "NAVFAC Washington", "Department of the Navy", "Department of Defense")
    assert result.contact_source == "office_name"
    assert result.command == "NAVFAC"
    assert result.small_business_contact.email == "navfac_sb@us.navy.mil"
    assert result.source == "NAVFAC"
    assert any("FY2026 NDAA" in p for p in result.pain_points)
    assert result.budget["agency"] == "Department of Defense"


def test_sub_agency_table(store):
    result = resolve_agency_enrichment(
        store, "Regional Office 4", "Naval Facilities Engineering Command", "Department of Defense"
    )
    assert result.contact_source == "sub_agency"
    assert result.command == "NAVFAC"


def test_service_branch_contact(store):
    result = resolve_agency_enrichment(store, "Some Base Contracting Office", "", "Department of the Army")
    assert result.contact_source == "service_branch"
    assert result.command is None
    assert result.small_business_contact.name == "Army Office of Small Business Programs"
    assert result.small_business_contact.website == "https://www.army.mil/osbp"
    assert result.website == "https://www.army.mil"
    assert result.forecast_url == "https://www.army.mil/osbp"
    # the SAM keyword is the agency string that identified the branch
    assert result.sam_forecast_url.endswith("%22Department%20of%20the%20Army%22")


def test_civilian_parent_agency(store):
    result = resolve_agency_enrichment(store, "Random Obscure Office", "", "Department of Commerce")
    assert result.contact_source == "civilian_agency"
    assert result.command == "Commerce"
    assert result.small_business_contact.email == "osdbu@doc.gov"
    assert result.source == "Department of Commerce"
    assert result.budget["toptier_code"] == "013"


def test_unknown_office_gets_placeholder(store):
    result = resolve_agency_enrichment(store, None, None, None)
    assert result.contact_source == "placeholder"
    assert result.small_business_contact.email == "answerdesk@sba.gov"
    assert result.sam_forecast_url == store.commands["sam_default_url"]
    assert result.pain_points == []
    assert result.source == ""
    assert result.budget is None
