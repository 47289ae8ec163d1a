import copy

import pytest

from backend.reference.store import (
    ReferenceDataError,
    build_reference_store,
    load_reference_data,
    summarize_reference_store,
    validate_reference_data,
)


def test_bundled_reference_data_valid(store):
    raw = load_reference_data()
    assert validate_reference_data(raw) == []
    summary = summarize_reference_store(store)
    assert summary["commands"] >= 40
    assert summary["forecasts"] >= 1
    assert isinstance(summary["hash"], str) and len(summary["hash"]) == 64


def test_store_is_read_only(store):
    with pytest.raises(TypeError):
        store.commands["commands"]["NEW"] = {}
    assert isinstance(store.contractors["primes"], tuple)


def test_validation_reports_each_broken_section():
    raw = copy.deepcopy(load_reference_data())
    raw["commands"]["sam_search_url"] = "https://sam.gov/search/"
    raw["commands"]["commands"]["NAVFAC"].pop("full_name")
    raw["locations"]["zip_ranges"]["VA"] = [[24699, 22000]]
    raw["office_names"]["generic_replacements"].append({"pattern": "(unclosed", "replacement": "x"})
    raw["budget"]["agencies"]["Broken"] = {"fy2025": None}
    raw["forecasts"]["forecasts"].append(dict(raw["forecasts"]["forecasts"][0]))

    errs = validate_reference_data(raw)
    joined = "\n".join(errs)
    assert "{keyword}" in joined
    assert "commands.commands.NAVFAC.full_name is required" in errs
    assert "locations.zip_ranges.VA" in joined
    assert "regex compile error" in joined
    assert "budget.agencies.Broken.fy2025.budget_authority must be a number" in errs
    assert any(e.startswith("duplicate forecast id") for e in errs)


def test_wrong_section_types_do_not_crash_validation():
    raw = copy.deepcopy(load_reference_data())
    raw["commands"]["commands"] = ["not", "a", "dict"]
    raw["contractors"]["primes"] = {"oops": 1}
    errs = validate_reference_data(raw)
    assert "commands.commands must be a dict" in errs
    assert "contractors.primes must be a list" in errs


def test_build_rejects_invalid_tables():
    raw = copy.deepcopy(load_reference_data())
    del raw["osbp"]["placeholder"]
    with pytest.raises(ReferenceDataError) as exc:
        build_reference_store(raw)
    assert any("osbp.placeholder" in e for e in exc.value.errors)
