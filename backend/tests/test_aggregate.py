from backend.analysis.aggregate import (
    OfficeAggregate,
    aggregate_awards,
    apply_display_names,
    compute_percentiles,
    rank_offices,
)
from backend.analysis.normalizer import normalizer_for
from backend.connectors.usaspending import AwardRecord, adapt_award_records


def _record(office, amount, offers=None, set_aside=None, **extra):
    return AwardRecord(
        award_amount=amount,
        awarding_agency="Department of Defense",
        awarding_sub_agency="Department of the Navy",
        awarding_office=office,
        offers=offers,
        set_aside_type=set_aside,
        **extra,
    )


def test_awards_fold_into_one_bucket_per_office(store):
    records = [
        _record("NAVFAC WASHINGTON", 1_000_000, offers=3),
        _record("NAVFAC WASHINGTON", 250_000, offers=5),
        _record("NAVFAC Washington", 50_000),
        _record("802 CONS", 10_000, offers=1, set_aside="SBA"),
    ]
    buckets = aggregate_awards(records, False, normalizer_for(store), store)
    by_office = {b.contracting_office: b for b in buckets.values()}

    navfac = by_office["NAVFAC Washington"]
    assert navfac.contract_count == 3
    assert navfac.total_spending == 1_300_000
    assert navfac.set_aside_spending == 0
    assert navfac.offers_data == [3, 5]
    assert navfac.bids_per_contract_avg == 4.0

    squadron = by_office["802nd Contracting Squadron"]
    assert squadron.set_aside_contract_count == 1
    assert squadron.set_aside_spending == 10_000


def test_set_aside_filtered_search_counts_every_award(store):
    records = [_record("NAVFAC WASHINGTON", 100.0), _record("NAVFAC WASHINGTON", 200.0, set_aside="None")]
    bucket = next(iter(aggregate_awards(records, True, normalizer_for(store), store).values()))
    assert bucket.set_aside_spending == 300.0
    assert bucket.set_aside_contract_count == 2


def test_missing_agency_falls_back_to_unknown(store):
    buckets = aggregate_awards([AwardRecord(award_amount=5.0)], False, normalizer_for(store), store)
    bucket = next(iter(buckets.values()))
    assert bucket.parent_agency == "Unknown Agency"
    assert bucket.contracting_office == "Unknown Agency"


def test_percentiles_use_floor_indices():
    bucket = OfficeAggregate(agency_id="x", contracting_office="x", agency_name="x", parent_agency="x")
    bucket.offers_data = list(range(20, 0, -1))
    bucket.total_offers = sum(bucket.offers_data)
    compute_percentiles(bucket)
    assert bucket.offers_data[0] == 1
    assert bucket.bids_per_contract_5th == 2
    assert bucket.bids_per_contract_95th == 20
    assert bucket.bids_per_contract_avg == 10.5


def test_percentiles_empty_and_single_sample():
    empty = OfficeAggregate(agency_id="x", contracting_office="x", agency_name="x", parent_agency="x")
    compute_percentiles(empty)
    assert empty.bids_per_contract_5th is None
    assert empty.bids_per_contract_avg is None

    single = OfficeAggregate(
        agency_id="x", contracting_office="x", agency_name="x", parent_agency="x", offers_data=[4], total_offers=4
    )
    compute_percentiles(single)
    assert (single.bids_per_contract_5th, single.bids_per_contract_avg, single.bids_per_contract_95th) == (4, 4.0, 4)


def test_ranking_prefers_set_aside_then_total():
    def office(name, set_aside, total):
        return OfficeAggregate(
            agency_id=name,
            contracting_office=name,
            agency_name=name,
            parent_agency="p",
            set_aside_spending=set_aside,
            total_spending=total,
        )

    ranked = rank_offices(
        [
            office("a", 5_000, 10_000),
            office("b", 5_500, 90_000),
            office("c", 50_000, 60_000),
            office("d", 0, 1_000_000),
        ]
    )
    # a and b are within $1,000 of set-aside spending, so total spending decides
    assert [o.contracting_office for o in ranked] == ["c", "b", "a", "d"]


def test_ranking_truncates_to_fifty():
    offices = [
        OfficeAggregate(agency_id=str(i), contracting_office=str(i), agency_name="n", parent_agency="p", total_spending=i)
        for i in range(60)
    ]
    ranked = rank_offices(offices)
    assert len(ranked) == 50
    assert ranked[0].total_spending == 59


def test_display_names_apply_office_ids_and_usace_districts(store):
    normalizer = normalizer_for(store)
    offices = [
        OfficeAggregate(agency_id="70SBUR", contracting_office="o", agency_name="DHS Office", parent_agency="p"),
        OfficeAggregate(
            agency_id="N/A",
            contracting_office="o",
            agency_name="U.S. Army Corps of Engineers",
            parent_agency="Department of Defense",
            city="Mobile",
        ),
    ]
    apply_display_names(offices, normalizer)
    assert offices[0].agency_name == "U.S. Citizenship and Immigration Services (USCIS)"
    assert offices[1].agency_name == "USACE - Mobile District"


def test_adapter_reads_display_and_snake_case_keys():
    records = adapt_award_records(
        [
            {"Award Amount": "1500.50", "Awarding Office": " NAVFAC ", "Number of Offers Received": "3 offers"},
            {"award_amount": None, "awarding_office": "", "number_of_offers_received": 0},
            "not a dict",
        ]
    )
    assert len(records) == 2
    assert records[0].award_amount == 1500.5
    assert records[0].awarding_office == "NAVFAC"
    assert records[0].offers == 3
    assert records[1].award_amount == 0.0
    assert records[1].awarding_office is None
    assert records[1].offers is None
