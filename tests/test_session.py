"""Tests for the in-memory benchmark session"""

import pytest

from salary_benchmark.models import FilterMode, PositionFilter
from salary_benchmark.positions import TARGET_POSITIONS
from salary_benchmark.session import BenchmarkSession


@pytest.fixture
def session(qa_position, ops_position):
    return BenchmarkSession([qa_position, ops_position])


@pytest.fixture
def qa_records():
    return [
        {
            "externalJobTitle": "QA工程师",
            "companyName": "SHEIN",
            "location": "广州",
            "minMonthlySalary": 10000,
            "maxMonthlySalary": 20000,
            "monthsPerYear": 13,
        },
        {
            "externalJobTitle": "品控工程师",
            "companyName": "外贸公司",
            "location": "深圳",
            "minMonthlySalary": 8000,
            "maxMonthlySalary": 12000,
            "monthsPerYear": 12,
        },
    ]


def test_default_session_uses_seed_positions():
    """Test a session without positions starts from the seed list"""
    session = BenchmarkSession()

    assert session.positions == TARGET_POSITIONS
    assert session.postings == ()


def test_add_position_duplicate_id(session, qa_position):
    """Test adding an existing id raises"""
    with pytest.raises(ValueError):
        session.add_position(qa_position)


def test_add_positions_skips_existing(session, qa_position, buyer_position):
    """Test bulk add skips duplicates and appends new positions in order"""
    added = session.add_positions([qa_position, buyer_position])

    assert added == 1
    assert [p.id for p in session.positions] == ["qa", "ops", "buyer"]


def test_get_position_unknown(session):
    """Test unknown position ids raise KeyError"""
    with pytest.raises(KeyError):
        session.get_position("missing")


def test_ingest_appends_postings(session, qa_records):
    """Test ingestion validates, tags and appends records"""
    postings = session.ingest("qa", qa_records + [{"broken": True}])

    assert len(postings) == 2
    assert session.postings == tuple(postings)
    assert session.posting_count("qa") == 2
    assert session.posting_count("ops") == 0
    assert session.collected_position_ids == {"qa"}
    assert postings[0].is_competitor is True


def test_ingest_unknown_position(session, qa_records):
    """Test ingesting for an unknown position raises KeyError"""
    with pytest.raises(KeyError):
        session.ingest("missing", qa_records)


def test_append_postings_rejects_unknown_position(session, posting_factory):
    """Test postings must reference a known position and nothing is appended otherwise"""
    with pytest.raises(KeyError):
        session.append_postings([posting_factory("a", position_id="qa"), posting_factory("b", position_id="nope")])

    assert session.postings == ()


def test_collection_is_append_only(session, qa_records):
    """Test snapshots are not affected by later ingestion"""
    session.ingest("qa", qa_records[:1])
    snapshot = session.postings
    session.ingest("qa", qa_records[1:])

    assert len(snapshot) == 1
    assert len(session.postings) == 2
    assert session.postings[0] == snapshot[0]


def test_postings_for(session, qa_records, posting_factory):
    """Test per-position posting listing"""
    session.ingest("qa", qa_records)
    session.append_postings([posting_factory("ops-1", position_id="ops")])

    assert len(session.postings_for("qa")) == 2
    assert [p.id for p in session.postings_for("ops")] == ["ops-1"]
    assert len(session.postings_for()) == 3


def test_filters_default_and_replace(session):
    """Test filters default to ALL and are replaced wholesale"""
    assert session.filter_for("qa") == PositionFilter()

    custom = PositionFilter(mode=FilterMode.CUSTOM, selected_companies=frozenset({"SHEIN"}))
    session.set_filter("qa", custom)
    assert session.filter_for("qa") == custom

    session.set_filter("qa", PositionFilter(mode=FilterMode.ONLY_COMPETITORS))
    assert session.filter_for("qa").mode is FilterMode.ONLY_COMPETITORS
    assert session.filter_for("qa").selected_companies == frozenset()


def test_set_filter_unknown_position(session):
    """Test filters can only be set for known positions"""
    with pytest.raises(KeyError):
        session.set_filter("missing", PositionFilter())


def test_benchmark_report(session, qa_records):
    """Test the session runs the pipeline with its filters"""
    session.ingest("qa", qa_records)

    report = session.benchmark()
    assert [r.target_position.id for r in report.results] == ["qa"]
    assert report.results[0].sample_size == 2
    assert report.results[0].monthly.p50 == 12500
    assert report.coverage.valid == 2
    assert report.coverage.total == 2

    session.set_filter("qa", PositionFilter(mode=FilterMode.ONLY_COMPETITORS))
    report = session.benchmark(locations=["广州"])
    assert report.results[0].sample_size == 1
    assert report.results[0].yearly.p50 == 195000
    assert report.results[0].available_companies == ["SHEIN"]


def test_benchmark_search_and_empty_custom(session, qa_records):
    """Test empty custom selection keeps the position visible with zero samples"""
    session.ingest("qa", qa_records)
    session.set_filter("qa", PositionFilter(mode=FilterMode.CUSTOM))

    report = session.benchmark(search_query="q")
    assert len(report.results) == 1
    assert report.results[0].sample_size == 0
    assert report.coverage.valid == 0
    assert report.coverage.total == 2

    assert session.benchmark(search_query="运营").results == []
