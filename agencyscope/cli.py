"""Typer-based command line interface for AgencyScope."""
from __future__ import annotations

import json
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv

from backend.analysis.criteria import InvalidSearchCriteria, validate_psc
from backend.analysis.naics import resolve_naics_filter
from backend.analysis.normalizer import normalizer_for
from backend.logging_config import configure_logging
from backend.reference.store import (
    ReferenceDataError,
    load_reference_data,
    load_reference_store,
    summarize_reference_store,
    validate_reference_data,
)
from backend.runtime import EXPORTS_DIR, ensure_runtime_directories
from backend.settings import load_settings

app = typer.Typer(help="AgencyScope control plane")
reference_app = typer.Typer(help="Reference table utilities")
contractors_app = typer.Typer(help="Prime and tier-2 contractor suggestions")

app.add_typer(reference_app, name="reference")
app.add_typer(contractors_app, name="contractors")


@app.callback()
def main_callback() -> None:
    load_dotenv()
    configure_logging(load_settings().log_level)
    ensure_runtime_directories()


def _store(path: Optional[Path]):
    settings = load_settings(reference_dir=path)
    try:
        return settings, load_reference_store(settings.reference_dir)
    except ReferenceDataError as exc:
        typer.echo("Reference data INVALID:")
        for e in exc.errors:
            typer.echo(f"- {e}")
        raise typer.Exit(code=2)


def _echo_json(payload) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@reference_app.command("validate")
def reference_validate(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory holding the reference JSON tables"),
):
    settings = load_settings(reference_dir=path)
    try:
        raw = load_reference_data(settings.reference_dir)
    except ReferenceDataError as exc:
        raw, errs = None, exc.errors
    else:
        errs = validate_reference_data(raw)
    if errs:
        typer.echo("Reference data INVALID:")
        for e in errs:
            typer.echo(f"- {e}")
        raise typer.Exit(code=2)

    typer.echo("Reference data OK")
    _echo_json(summarize_reference_store(load_reference_store(settings.reference_dir)))


@reference_app.command("summary")
def reference_summary(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory holding the reference JSON tables"),
):
    _settings, store = _store(path)
    _echo_json(summarize_reference_store(store))


@app.command()
def search(
    naics: Optional[str] = typer.Option(None, "--naics", help="NAICS code, 2-6 digits"),
    business_type: Optional[str] = typer.Option(None, "--business-type", help="Small-business program, e.g. 'Women-Owned'"),
    veteran_status: Optional[str] = typer.Option(None, "--veteran-status", help="Veteran program, e.g. 'Service-Disabled Veteran'"),
    zip_code: Optional[str] = typer.Option(None, "--zip", help="5-digit ZIP; searches the state and its neighbours"),
    goods_or_services: Optional[str] = typer.Option(None, "--goods-or-services", help="Free-text hint, echoed back"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the full JSON response to this file"),
    save: bool = typer.Option(False, "--save", help="Write the response under data/exports/"),
):
    """Search USAspending and rank the contracting offices that buy what you sell."""
    from backend.services.query import SearchCriteria
    from backend.services.search import search_government_contracts

    settings, store = _store(None)
    criteria = SearchCriteria(
        business_type=business_type,
        naics_code=naics,
        zip_code=zip_code,
        veteran_status=veteran_status,
        goods_or_services=goods_or_services,
    )
    try:
        response = search_government_contracts(criteria, store, settings)
    except InvalidSearchCriteria as exc:
        typer.echo(f"Search criteria INVALID: [{exc.code}] {exc}")
        raise typer.Exit(code=2)

    payload = response.dict()
    if save and out is None:
        stamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        out = EXPORTS_DIR / f"search_{stamp}.json"
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")

    summary = response.summary
    typer.echo(
        "Search summary: "
        f"awards={summary.total_awards} offices={summary.total_agencies} "
        f"spending={summary.total_spending:,.2f} auto_adjusted={response.was_auto_adjusted}"
    )
    if response.naics_correction_message:
        typer.echo(response.naics_correction_message)
    for office in response.agencies[:10]:
        typer.echo(f"- {office['contracting_office']} ({office['parent_agency']}): {office['contract_count']} awards")
    if response.suggestion_message:
        typer.echo(response.suggestion_message)
        for option in response.suggestions:
            typer.echo(f"- [{option.type}] {option.label}: ~{option.estimated_contracts}")
    if out is not None:
        typer.echo(f"Response JSON: {out.resolve()}")


@app.command()
def enrich(
    office: Optional[str] = typer.Option(None, "--office", help="Awarding office name"),
    sub_agency: Optional[str] = typer.Option(None, "--sub-agency", help="Awarding sub-agency"),
    parent_agency: Optional[str] = typer.Option(None, "--parent-agency", help="Top-tier agency"),
    command: Optional[str] = typer.Option(None, "--command", help="Command key, e.g. NAVFAC"),
):
    """Resolve the command, pain points and small-business contact for an office."""
    from backend.services.resolver import resolve_agency_enrichment

    _settings, store = _store(None)
    _echo_json(resolve_agency_enrichment(store, office, sub_agency, parent_agency, command).dict())


@app.command()
def normalize(
    names: List[str] = typer.Argument(..., help="Raw office names"),
    office_code: Optional[str] = typer.Option(None, "--office-code", help="Awarding office code"),
):
    """Print the canonical display name for each raw office name."""
    _settings, store = _store(None)
    normalizer = normalizer_for(store)
    for name in names:
        typer.echo(f"{name} -> {normalizer.normalize(name, office_code)}")


@contractors_app.command("primes")
def contractors_primes(
    naics: Optional[str] = typer.Option(None, "--naics"),
    psc: Optional[str] = typer.Option(None, "--psc"),
    agency: List[str] = typer.Option([], "--agency", help="Repeat for several agencies"),
):
    from backend.services.contractors import suggest_contractors

    _settings, store = _store(None)
    try:
        naics_filter = resolve_naics_filter(naics, store)
        psc_code = validate_psc(psc)
    except InvalidSearchCriteria as exc:
        typer.echo(f"Contractor filter INVALID: [{exc.code}] {exc}")
        raise typer.Exit(code=2)
    primes = suggest_contractors(
        store,
        naics_code=naics_filter.original if naics_filter else None,
        psc_code=psc_code,
        agencies=agency,
    )
    _echo_json([p.dict() for p in primes])


@contractors_app.command("tier2")
def contractors_tier2(
    naics: Optional[str] = typer.Option(None, "--naics"),
    psc: Optional[str] = typer.Option(None, "--psc"),
):
    from backend.services.contractors import suggest_tier2

    _settings, store = _store(None)
    try:
        naics_filter = resolve_naics_filter(naics, store)
        psc_code = validate_psc(psc)
    except InvalidSearchCriteria as exc:
        typer.echo(f"Contractor filter INVALID: [{exc.code}] {exc}")
        raise typer.Exit(code=2)
    tier2 = suggest_tier2(store, naics_code=naics_filter.original if naics_filter else None, psc_code=psc_code)
    _echo_json([t.dict() for t in tier2])


@app.command()
def budget(
    agency: List[str] = typer.Argument(None, help="Agency names; omit for winners and losers"),
    limit: int = typer.Option(10, "--limit", help="Rows per side when ranking"),
):
    """Show FY2025 -> FY2026 budget authority changes."""
    from backend.services.budget import build_budget_checkup, winners_and_losers

    _settings, store = _store(None)
    if not agency:
        ranked = winners_and_losers(store, limit)
        _echo_json({side: [b.dict() for b in rows] for side, rows in ranked.items()})
        return
    checkup = build_budget_checkup(store, agency)
    if checkup is None:
        typer.echo("No budget data for the requested agencies")
        raise typer.Exit(code=1)
    _echo_json(checkup.dict())


@app.command()
def serve(host: str = "127.0.0.1", port: int = 8000):
    """Run the FastAPI service with uvicorn."""
    import uvicorn

    uvicorn.run("backend.app:app", host=host, port=port, reload=False)


@app.command()
def test():
    """Run the test suite."""
    subprocess.run([sys.executable, "-m", "pytest", "-q"], check=True)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
