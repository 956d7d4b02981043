"""Pydantic models for target positions, postings, filters and salary statistics"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, PositiveInt


class TargetPosition(BaseModel):
    """A job role for which market salary benchmarks are collected."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = ""
    responsibilities: str = ""
    keywords: list[str] = Field(default_factory=list)
    competitors: list[str] = Field(default_factory=list)


class RawPosting(BaseModel):
    """Validated provider/import record, before it is bound to a target position.

    Provider payloads use camelCase keys; snake_case is accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    external_job_title: str = Field(alias="externalJobTitle")
    company_name: str = Field(alias="companyName")
    location: str
    min_monthly_salary: FiniteFloat = Field(alias="minMonthlySalary")
    max_monthly_salary: FiniteFloat = Field(alias="maxMonthlySalary")
    months_per_year: PositiveInt = Field(alias="monthsPerYear")
    job_responsibility_snippet: str = Field(default="", alias="jobResponsibilitySnippet")
    benefits: list[str] = Field(default_factory=list)
    source: str | None = None
    link: str | None = None


class JobPosting(BaseModel):
    """One observed or generated market data point."""

    model_config = ConfigDict(frozen=True)

    id: str
    target_position_id: str
    external_job_title: str
    company_name: str
    location: str
    min_monthly_salary: float
    max_monthly_salary: float
    months_per_year: int
    job_responsibility_snippet: str = ""
    benefits: list[str] = Field(default_factory=list)
    source: str = ""
    link: str = ""
    is_competitor: bool = False

    @property
    def monthly_salary(self) -> float:
        """Mean of the monthly salary range."""
        return (self.min_monthly_salary + self.max_monthly_salary) / 2

    @property
    def yearly_salary(self) -> float:
        """Monthly mean annualized by the number of paid months."""
        return self.monthly_salary * self.months_per_year


class FilterMode(str, Enum):
    ALL = "ALL"
    ONLY_COMPETITORS = "ONLY_COMPETITORS"
    CUSTOM = "CUSTOM"


class PositionFilter(BaseModel):
    """Per-position company filter.

    `selected_companies` only matters when mode is CUSTOM.
    """

    model_config = ConfigDict(frozen=True)

    mode: FilterMode = FilterMode.ALL
    selected_companies: frozenset[str] = Field(default_factory=frozenset)


class SalaryStats(BaseModel):
    """Five-number summary plus sample size. Empty samples are all zeros."""

    model_config = ConfigDict(frozen=True)

    min: float = 0
    p25: float = 0
    p50: float = 0
    p75: float = 0
    max: float = 0
    sample_size: int = 0


class AggregationResult(BaseModel):
    """Monthly and yearly salary distribution for one target position."""

    model_config = ConfigDict(frozen=True)

    target_position: TargetPosition
    monthly: SalaryStats
    yearly: SalaryStats
    sample_size: int
    available_companies: list[str] = Field(default_factory=list)


class DataCoverage(BaseModel):
    """Valid (post-filter) data points vs. total collected data points."""

    model_config = ConfigDict(frozen=True)

    valid: int = 0
    total: int = 0


class BenchmarkReport(BaseModel):
    """Pipeline results together with the coverage indicator."""

    model_config = ConfigDict(frozen=True)

    results: list[AggregationResult] = Field(default_factory=list)
    coverage: DataCoverage = Field(default_factory=DataCoverage)
