from typing import Any, Iterable

from loguru import logger

from salary_benchmark.aggregation import DEFAULT_FILTER, AggregationPipeline, summarize_coverage
from salary_benchmark.ingestion import build_postings
from salary_benchmark.models import BenchmarkReport, JobPosting, PositionFilter, TargetPosition
from salary_benchmark.positions import TARGET_POSITIONS


class BenchmarkSession:
    """
    In-memory session state: target positions, the append-only posting
    collection and the per-position company filters
    """

    def __init__(self, positions: Iterable[TargetPosition] | None = None):
        """
        Initialize the session

        Args:
            positions (Iterable[TargetPosition], optional): Initial positions, defaults to the seed list
        """
        # Insertion-ordered, keyed by position id
        self._positions: dict[str, TargetPosition] = {}
        self._postings: list[JobPosting] = []
        self._filters: dict[str, PositionFilter] = {}

        for position in TARGET_POSITIONS if positions is None else positions:
            self.add_position(position)

        logger.info(f"Session started with {len(self._positions)} target positions")

    @property
    def positions(self) -> list[TargetPosition]:
        """
        Target positions in creation order

        Returns:
            list[TargetPosition]: Copy of the position list
        """
        return list(self._positions.values())

    @property
    def postings(self) -> tuple[JobPosting, ...]:
        """
        Snapshot of every posting collected so far

        Returns:
            tuple[JobPosting, ...]: Postings in arrival order
        """
        return tuple(self._postings)

    def get_position(self, position_id: str) -> TargetPosition:
        """
        Retrieve a target position by id

        Raises:
            KeyError: If the position does not exist
        """
        if position_id not in self._positions:
            raise KeyError(f"Unknown target position '{position_id}'")
        return self._positions[position_id]

    def add_position(self, position: TargetPosition) -> TargetPosition:
        """
        Add a target position to the session

        Raises:
            ValueError: If a position with the same id already exists
        """
        if position.id in self._positions:
            raise ValueError(f"Target position '{position.id}' already exists")
        self._positions[position.id] = position
        logger.debug(f"Added target position {position.id} ({position.name})")
        return position

    def add_positions(self, positions: Iterable[TargetPosition]) -> int:
        """
        Add several positions, skipping ids that already exist

        Returns:
            int: Number of positions added
        """
        added = 0
        for position in positions:
            if position.id in self._positions:
                logger.warning(f"Target position '{position.id}' already exists, skipping")
                continue
            self.add_position(position)
            added += 1
        return added

    def append_postings(self, postings: Iterable[JobPosting]) -> int:
        """
        Append postings to the collection

        Raises:
            KeyError: If a posting references an unknown target position

        Returns:
            int: Number of postings appended
        """
        postings = list(postings)
        for posting in postings:
            if posting.target_position_id not in self._positions:
                raise KeyError(f"Posting {posting.id} references unknown target position '{posting.target_position_id}'")
        self._postings.extend(postings)
        return len(postings)

    def ingest(self, position_id: str, records: Iterable[Any]) -> list[JobPosting]:
        """
        Validate raw records collected for a position and append them

        Args:
            position_id (str): Target position the records belong to
            records (Iterable): Raw provider or import records

        Returns:
            list[JobPosting]: The postings that were accepted
        """
        postings = build_postings(self.get_position(position_id), records)
        self.append_postings(postings)
        logger.info(f"Session now holds {len(self._postings)} postings")
        return postings

    def postings_for(self, position_id: str | None = None) -> list[JobPosting]:
        """Postings of one position, or all postings when no id is given"""
        if position_id is None:
            return list(self._postings)
        return [p for p in self._postings if p.target_position_id == position_id]

    def posting_count(self, position_id: str) -> int:
        return sum(1 for p in self._postings if p.target_position_id == position_id)

    @property
    def collected_position_ids(self) -> set[str]:
        """Ids of positions with at least one posting"""
        return {p.target_position_id for p in self._postings}

    def filter_for(self, position_id: str) -> PositionFilter:
        return self._filters.get(position_id, DEFAULT_FILTER)

    def set_filter(self, position_id: str, position_filter: PositionFilter) -> None:
        """
        Replace the company filter of a position

        Raises:
            KeyError: If the position does not exist
        """
        self.get_position(position_id)
        self._filters[position_id] = position_filter
        logger.debug(f"Filter for position {position_id} set to {position_filter.mode.value}")

    def pipeline(self, locations: Iterable[str] = (), search_query: str = "") -> AggregationPipeline:
        """Pipeline bound to the current filter mapping"""
        return AggregationPipeline(
            locations=tuple(locations),
            position_filters=dict(self._filters),
            search_query=search_query,
        )

    def benchmark(self, locations: Iterable[str] = (), search_query: str = "") -> BenchmarkReport:
        """
        Run the aggregation pipeline over the current snapshot

        Args:
            locations (Iterable[str]): Location substrings, empty for no restriction
            search_query (str): Case-insensitive position name filter

        Returns:
            BenchmarkReport: Per-position results and the valid/total coverage
        """
        postings = self.postings
        results = self.pipeline(locations, search_query).run(postings, self.positions)
        return BenchmarkReport(results=results, coverage=summarize_coverage(results, postings))
