"""Per-position filtering and salary aggregation over the posting collection"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from loguru import logger

from salary_benchmark.models import (
    AggregationResult,
    DataCoverage,
    FilterMode,
    JobPosting,
    PositionFilter,
    TargetPosition,
)
from salary_benchmark.percentiles import compute_stats

DEFAULT_FILTER = PositionFilter()


def filter_by_location(postings: Iterable[JobPosting], locations: Iterable[str]) -> list[JobPosting]:
    """Keep postings whose location contains any of the given substrings (empty = keep all)."""
    locations = list(locations)
    if not locations:
        return list(postings)
    return [p for p in postings if any(loc in p.location for loc in locations)]


def apply_position_filter(postings: Iterable[JobPosting], position_filter: PositionFilter) -> list[JobPosting]:
    """
    Restrict postings by company according to a position filter.

    An empty CUSTOM selection keeps nothing.
    """
    match position_filter.mode:
        case FilterMode.ONLY_COMPETITORS:
            return [p for p in postings if p.is_competitor]
        case FilterMode.CUSTOM:
            selected = position_filter.selected_companies
            return [p for p in postings if p.company_name in selected]
        case _:
            return list(postings)


def available_companies(postings: Iterable[JobPosting]) -> list[str]:
    """Distinct company names, sorted."""
    return sorted({p.company_name for p in postings})


def salary_samples(postings: Sequence[JobPosting]) -> tuple[list[float], list[float]]:
    """Monthly (mean of range) and yearly (monthly x paid months) samples."""
    monthly = [p.monthly_salary for p in postings]
    yearly = [p.yearly_salary for p in postings]
    return monthly, yearly


def aggregate_position(
    position: TargetPosition,
    postings: Iterable[JobPosting],
    locations: Iterable[str] = (),
    position_filter: PositionFilter = DEFAULT_FILTER,
) -> AggregationResult:
    """
    Aggregate salary statistics for a single target position.

    Args:
        position: Target position to aggregate
        postings: Full posting collection (other positions are ignored)
        locations: Location substrings; empty means no restriction
        position_filter: Company filter for this position

    Returns:
        AggregationResult for the position, possibly with zero samples
    """
    raw = [p for p in postings if p.target_position_id == position.id]
    after_location = filter_by_location(raw, locations)
    surviving = apply_position_filter(after_location, position_filter)

    monthly, yearly = salary_samples(surviving)
    return AggregationResult(
        target_position=position,
        monthly=compute_stats(monthly),
        yearly=compute_stats(yearly),
        sample_size=len(surviving),
        available_companies=available_companies(after_location),
    )


def aggregate(
    postings: Sequence[JobPosting],
    positions: Sequence[TargetPosition],
    locations: Iterable[str] = (),
    position_filters: Mapping[str, PositionFilter] | None = None,
    search_query: str = "",
) -> list[AggregationResult]:
    """
    Run the aggregation pipeline for every target position, in the given order.

    Positions without any posting in the full collection are omitted; positions
    filtered down to zero postings are kept with zero stats. A non-empty search
    query additionally keeps only positions whose name contains it
    (case-insensitive).
    """
    locations = list(locations)
    position_filters = position_filters or {}
    collected_ids = {p.target_position_id for p in postings}
    query = search_query.strip().lower()

    results = []
    for position in positions:
        if position.id not in collected_ids:
            continue
        if query and query not in position.name.lower():
            continue
        results.append(
            aggregate_position(
                position,
                postings,
                locations,
                position_filters.get(position.id, DEFAULT_FILTER),
            )
        )

    logger.debug(f"Aggregated {len(results)} of {len(positions)} positions over {len(postings)} postings")
    return results


def summarize_coverage(results: Iterable[AggregationResult], postings: Sequence[JobPosting]) -> DataCoverage:
    """Valid data (sum of emitted sample sizes) vs. total collected postings."""
    return DataCoverage(valid=sum(r.sample_size for r in results), total=len(postings))


@dataclass(frozen=True)
class AggregationPipeline:
    """Immutable set of filters to run the aggregation with.

    Build a new pipeline whenever a filter changes and re-run it over the
    current posting snapshot.
    """

    locations: tuple[str, ...] = ()
    position_filters: Mapping[str, PositionFilter] = field(default_factory=dict)
    search_query: str = ""

    def __post_init__(self):
        object.__setattr__(self, "locations", tuple(self.locations))
        object.__setattr__(self, "position_filters", MappingProxyType(dict(self.position_filters)))

    def run(self, postings: Sequence[JobPosting], positions: Sequence[TargetPosition]) -> list[AggregationResult]:
        return aggregate(postings, positions, self.locations, self.position_filters, self.search_query)
