"""Spreadsheet adapters: target position import and benchmark export (xlsx/xls or CSV)"""

import csv
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import pandas as pd
import xlrd
from loguru import logger

from salary_benchmark.models import AggregationResult, TargetPosition
from salary_benchmark.positions import IMPORTED_CATEGORY, create_position, new_position_id

# Accepted header names per field, first match wins
NAME_COLUMNS = ("岗位名称", "岗位", "Position", "name")
RESPONSIBILITY_COLUMNS = ("岗位职责", "职责", "Responsibilities", "responsibilities")
KEYWORD_COLUMNS = ("关键词", "搜索关键词", "Keywords", "keywords")
COMPETITOR_COLUMNS = ("竞品公司", "竞品", "Competitors", "competitors")

EXPORT_COLUMNS = [
    "岗位名称",
    "样本量",
    "月薪-低值",
    "月薪-P25",
    "月薪-中位数",
    "月薪-P75",
    "月薪-高值",
    "年薪-低值",
    "年薪-P25",
    "年薪-中位数",
    "年薪-P75",
    "年薪-高值",
]
EXPORT_SHEET_NAME = "薪酬分析报表"

EXCEL_SUFFIXES = (".xlsx", ".xls")


class TabularFormatError(ValueError):
    """Raised when a spreadsheet cannot be parsed or has an unsupported format."""
    pass


@dataclass
class ImportReport:
    """Positions parsed from a file and the number of rejected rows"""

    positions: list[TargetPosition] = field(default_factory=list)
    rejected: int = 0

    @property
    def added(self) -> int:
        return len(self.positions)


def _first_value(row: dict[str, Any], columns: Iterable[str]) -> str:
    for column in columns:
        value = row.get(column)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def parse_position_rows(rows: Iterable[dict[str, Any]]) -> ImportReport:
    """
    Build target positions from tabular rows with flexible column names.

    Rows without both a name and responsibilities are rejected.
    """
    report = ImportReport()
    for index, row in enumerate(rows):
        name = _first_value(row, NAME_COLUMNS)
        responsibilities = _first_value(row, RESPONSIBILITY_COLUMNS)
        if not name or not responsibilities:
            report.rejected += 1
            continue

        report.positions.append(
            create_position(
                name=name,
                responsibilities=responsibilities,
                keywords=_first_value(row, KEYWORD_COLUMNS),
                competitors=_first_value(row, COMPETITOR_COLUMNS),
                category=IMPORTED_CATEGORY,
                position_id=f"{new_position_id('imported')}-{index}",
            )
        )
    return report


def _read_csv_rows(path: Path) -> list[dict[str, Any]]:
    # utf-8-sig strips the BOM spreadsheet tools prepend
    with open(path, newline="", encoding="utf-8-sig") as f:
        try:
            return list(csv.DictReader(f))
        except csv.Error as e:
            raise TabularFormatError(f"Could not parse CSV file {path}: {e}") from e


def _read_excel_rows(path: Path) -> list[dict[str, Any]]:
    """First worksheet as a list of header-keyed rows, empty cells as ''."""
    try:
        frame = pd.read_excel(path, sheet_name=0, dtype=str)
    except (ValueError, KeyError, zipfile.BadZipFile, xlrd.XLRDError) as e:
        raise TabularFormatError(f"Could not parse workbook {path}: {e}") from e
    return frame.fillna("").to_dict(orient="records")


def import_positions(path: Path | str) -> ImportReport:
    """
    Read target positions from an Excel workbook (.xlsx/.xls, first sheet) or a CSV file.

    Args:
        path: Spreadsheet with a header row

    Returns:
        ImportReport with the parsed positions and the rejected row count

    Raises:
        OSError: If the file cannot be read
        TabularFormatError: If the file is not a readable workbook or has an unknown suffix
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        rows = _read_excel_rows(path)
    elif suffix == ".csv":
        rows = _read_csv_rows(path)
    else:
        raise TabularFormatError(f"Unsupported file type '{path.suffix}', expected .xlsx, .xls or .csv")

    report = parse_position_rows(rows)
    logger.info(f"Imported {report.added} positions from {path} ({report.rejected} rows rejected)")
    return report


def result_rows(results: Iterable[AggregationResult]) -> list[dict[str, Any]]:
    """One labeled row per position with monthly/yearly stats and sample size."""
    rows = []
    for result in results:
        monthly, yearly = result.monthly, result.yearly
        rows.append(
            dict(
                zip(
                    EXPORT_COLUMNS,
                    [
                        result.target_position.name,
                        result.sample_size,
                        monthly.min,
                        monthly.p25,
                        monthly.p50,
                        monthly.p75,
                        monthly.max,
                        yearly.min,
                        yearly.p25,
                        yearly.p50,
                        yearly.p75,
                        yearly.max,
                    ],
                )
            )
        )
    return rows


def export_results(results: Iterable[AggregationResult], path: Path | str) -> int:
    """
    Write benchmark results to an .xlsx workbook (sheet 薪酬分析报表) or a CSV file,
    chosen by the file suffix.

    Returns:
        int: Number of data rows written

    Raises:
        TabularFormatError: If the suffix is neither .xlsx nor .csv
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".xlsx", ".csv"):
        raise TabularFormatError(f"Unsupported export type '{path.suffix}', expected .xlsx or .csv")

    path.parent.mkdir(parents=True, exist_ok=True)
    rows = result_rows(results)

    if suffix == ".xlsx":
        pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_excel(path, sheet_name=EXPORT_SHEET_NAME, index=False)
    else:
        with open(path, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.DictWriter(f, fieldnames=EXPORT_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)

    logger.info(f"Exported {len(rows)} benchmark rows to {path}")
    return len(rows)
