"""Ingestion boundary: untyped provider/import records → typed JobPostings"""

import random
import time
from typing import Any, Iterable
from uuid import uuid4

from loguru import logger
from pydantic import ValidationError

from salary_benchmark.models import JobPosting, RawPosting, TargetPosition

DEFAULT_SOURCE = "BOSS直聘"
DEFAULT_LINK_TEMPLATE = "https://www.zhipin.com/job_detail/{job_number}.html"

FALLBACK_SOURCE = "系统模拟"
FALLBACK_COMPANY = "未知公司"


def is_competitor(company_name: str, competitors: Iterable[str]) -> bool:
    """Case-insensitive substring match of a company name against competitor names."""
    company = company_name.lower()
    return any(c.strip() and c.strip().lower() in company for c in competitors)


def normalize_record(record: Any) -> RawPosting | None:
    """
    Validate an untyped record into a RawPosting.

    Args:
        record: Dict-like record from the provider or an import

    Returns:
        RawPosting, or None when the record is rejected
    """
    if isinstance(record, RawPosting):
        return record
    if not isinstance(record, dict):
        logger.warning(f"Rejected posting record of type {type(record).__name__}")
        return None

    try:
        return RawPosting.model_validate(record)
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
        logger.warning(f"Rejected posting record with invalid fields: {fields}")
        return None


def to_job_posting(raw: RawPosting, target: TargetPosition, posting_id: str) -> JobPosting:
    """Bind a validated record to its target position, filling documented defaults."""
    link = raw.link or DEFAULT_LINK_TEMPLATE.format(job_number=random.randint(0, 999_999))
    return JobPosting(
        id=posting_id,
        target_position_id=target.id,
        external_job_title=raw.external_job_title,
        company_name=raw.company_name,
        location=raw.location,
        min_monthly_salary=raw.min_monthly_salary,
        max_monthly_salary=raw.max_monthly_salary,
        months_per_year=raw.months_per_year,
        job_responsibility_snippet=raw.job_responsibility_snippet,
        benefits=list(raw.benefits),
        source=raw.source or DEFAULT_SOURCE,
        link=link,
        is_competitor=is_competitor(raw.company_name, target.competitors),
    )


def build_postings(target: TargetPosition, records: Iterable[Any]) -> list[JobPosting]:
    """
    Turn raw records collected for a target position into JobPostings.

    Invalid records are dropped. Ids have the form
    ``{target.id}-crawl-{epoch_ms}-{batch}-{index}``, where ``batch`` is a
    random hex tag so two batches in the same millisecond never collide.

    Args:
        target: Position the records were collected for
        records: Raw records (dicts or RawPosting)

    Returns:
        list[JobPosting]: Accepted postings, in input order
    """
    batch_stamp = f"{time.time_ns() // 1_000_000}-{uuid4().hex[:8]}"
    postings = []
    rejected = 0

    for index, record in enumerate(records):
        raw = normalize_record(record)
        if raw is None:
            rejected += 1
            continue
        postings.append(to_job_posting(raw, target, f"{target.id}-crawl-{batch_stamp}-{index}"))

    if rejected:
        logger.warning(f"Dropped {rejected} invalid records for position {target.id} ({target.name})")
    logger.info(f"Built {len(postings)} postings for position {target.id} ({target.name})")
    return postings


def fallback_records(target: TargetPosition) -> list[dict[str, Any]]:
    """Mock record used when the acquisition provider fails."""
    return [
        {
            "externalJobTitle": target.name,
            "companyName": target.competitors[0] if target.competitors else FALLBACK_COMPANY,
            "location": "广州",
            "minMonthlySalary": 15000,
            "maxMonthlySalary": 25000,
            "monthsPerYear": 13,
            "jobResponsibilitySnippet": "负责采购流程管理，供应商开发与维护。",
            "benefits": ["五险一金"],
            "source": FALLBACK_SOURCE,
            "link": "https://www.example.com/job/123",
        }
    ]
