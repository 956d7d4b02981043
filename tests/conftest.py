import pytest

from salary_benchmark.models import JobPosting, TargetPosition


def make_posting(
    posting_id: str,
    position_id: str = "qa",
    company: str = "SHEIN",
    location: str = "广州",
    min_salary: float = 10000,
    max_salary: float = 20000,
    months: int = 12,
    is_competitor: bool = False,
) -> JobPosting:
    return JobPosting(
        id=posting_id,
        target_position_id=position_id,
        external_job_title="QA工程师",
        company_name=company,
        location=location,
        min_monthly_salary=min_salary,
        max_monthly_salary=max_salary,
        months_per_year=months,
        is_competitor=is_competitor,
    )


@pytest.fixture
def qa_position():
    return TargetPosition(
        id="qa",
        name="QA",
        category="广分",
        responsibilities="大货品质QA和新品首单质量跟踪",
        keywords=["质量工程师", "QA工程师"],
        competitors=["SHEIN", "迈远"],
    )


@pytest.fixture
def ops_position():
    return TargetPosition(
        id="ops",
        name="独立站运营",
        category="小语种",
        responsibilities="负责欧洲市场的独立站业务",
        keywords=["shopify"],
        competitors=["棒谷"],
    )


@pytest.fixture
def buyer_position():
    return TargetPosition(
        id="buyer",
        name="海外供应商开发",
        category="广分",
        responsibilities="海外供应商开发项目协作",
        keywords=["海外采购"],
        competitors=["迈远"],
    )


@pytest.fixture
def qa_postings():
    """QA postings across two cities with mixed competitor status"""
    return [
        make_posting("qa-1", company="SHEIN", location="广州", min_salary=10000, max_salary=14000, months=13, is_competitor=True),
        make_posting("qa-2", company="迈远科技", location="广州天河", min_salary=12000, max_salary=18000, months=12, is_competitor=True),
        make_posting("qa-3", company="某电商公司", location="广州", min_salary=8000, max_salary=12000, months=14, is_competitor=False),
        make_posting("qa-4", company="SHEIN", location="深圳", min_salary=15000, max_salary=25000, months=15, is_competitor=True),
        make_posting("qa-5", company="外贸公司", location="深圳", min_salary=9000, max_salary=11000, months=12, is_competitor=False),
    ]


@pytest.fixture
def posting_factory():
    return make_posting
