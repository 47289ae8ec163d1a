from backend.services.contractors import (
    contact_score,
    find_prime_by_name,
    normalize_company_name,
    primes_by_agency,
    psc_to_naics,
    small_business_level,
    suggest_contractors,
    suggest_tier2,
)


def test_normalize_company_name_collapses_suffixes():
    assert normalize_company_name("Atlas Federal Engineering, LLC") == "ATLAS FEDERAL ENGINEERING"
    assert normalize_company_name("Atlas Federal Engineering LLC") == "ATLAS FEDERAL ENGINEERING"
    assert normalize_company_name("Redline Mechanical, L.L.C.") == "REDLINE MECHANICAL"
    assert normalize_company_name("Ironclad Cyber Defense Inc.") == "IRONCLAD CYBER DEFENSE"
    assert normalize_company_name("") == ""


def test_small_business_level():
    assert small_business_level(None, None) == "medium"
    assert small_business_level(240, 12_500_000_000) == "high"
    assert small_business_level(150, None) == "high"
    assert small_business_level(8, 45_000_000) == "low"
    assert small_business_level(40, 650_000_000) == "medium"


def test_psc_lookup_prefers_two_character_key(store):
    assert psc_to_naics(store, "7010") == list(store.contractors["psc_to_naics"]["70"])
    assert psc_to_naics(store, "D302") == list(store.contractors["psc_to_naics"]["D"])
    assert psc_to_naics(store, "X") == []
    assert psc_to_naics(store, None) == []


def test_suggest_contractors_dedupes_by_name(store):
    suggestions = suggest_contractors(store, naics_code="541330")
    atlas = [p for p in suggestions if normalize_company_name(p.name) == "ATLAS FEDERAL ENGINEERING"]
    assert len(atlas) == 1
    assert atlas[0].email == "smallbusiness@atlasfederal.example"
    assert atlas[0].small_business_level == "high"
    assert atlas[0].contact_strategy == (
        "Register in Atlas Federal Engineering LLC supplier portal at https://suppliers.atlasfederal.example"
    )
    assert atlas[0].specialties == ["Engineering Services", "Construction", "Heavy Construction"]
    assert atlas[0].industries[0] == "Professional Services"

    assert len(suggestions) <= 25
    scores = [contact_score(p) for p in suggestions]
    assert scores == sorted(scores, reverse=True)


def test_suggest_contractors_by_agency_and_pain_points(store):
    assert [p.name for p in primes_by_agency(store, "NAVSEA")] == ["Harborline Marine Services Corp"]
    assert primes_by_agency(store, " ") == []

    suggestions = suggest_contractors(store, agencies=["NAVSEA"], pain_points=["Cloud hosting backlog"])
    names = {p.name for p in suggestions}
    assert "Harborline Marine Services Corp" in names
    assert "Summit Cloud Solutions LLC" in names
    assert suggest_contractors(store) == []


def test_suggest_tier2(store):
    mechanical = suggest_tier2(store, naics_code="238220")
    redline = [t for t in mechanical if t.name.startswith("Redline")]
    assert len(redline) == 1
    assert redline[0].email == "office@redlinemech.example"

    everyone = suggest_tier2(store)
    assert len(everyone) == len(store.contractors["tier2"]) - 1
    assert everyone[-1].name == "Clearpath IT Staffing Inc"


def test_find_prime_by_name(store):
    assert find_prime_by_name(store, "keystone").name == "Keystone Systems Integration Inc"
    assert find_prime_by_name(store, "") is None
