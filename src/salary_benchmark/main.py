"""Main module for the salary benchmark MCP server."""

import csv
import os
import sys
import traceback
from typing import Any, Dict, List, Optional

from loguru import logger
from mcp.server.fastmcp import FastMCP

from salary_benchmark.collector import MarketDataCollector
from salary_benchmark.config import Settings
from salary_benchmark.models import FilterMode, PositionFilter
from salary_benchmark.positions import ALL_COMPETITORS, LOCATIONS, create_position
from salary_benchmark.provider import GeminiMarketDataProvider
from salary_benchmark.session import BenchmarkSession
from salary_benchmark.tabular import export_results, import_positions

settings = Settings.from_env()

logger.remove()
logger.add(
    sys.stderr,
    level=settings.log_level,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True
)

# Configure transport and statelessness
trspt = "stdio"
stateless_http = False
match os.environ.get("TRANSPORT", trspt):
    case "streamable-http":
        trspt = "streamable-http"
        stateless_http = True
    case _:
        trspt = "stdio"
        stateless_http = False

try:
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 10000))
    mcp = FastMCP("salary_benchmark", stateless_http=stateless_http, host=host, port=port)
    logger.info(f"FastMCP server initialized with transport: {trspt}, host: {host}, port: {port}")
except Exception as e:
    logger.error(f"Failed to initialize FastMCP server: {e}")
    raise

session = BenchmarkSession()
provider = GeminiMarketDataProvider(
    api_key=settings.api_key,
    model=settings.model,
    timeout=settings.request_timeout,
    locations=LOCATIONS,
)
collector = MarketDataCollector(
    session,
    provider,
    use_fallback=settings.use_fallback_data,
    batch_delay=settings.batch_delay,
)

if not settings.api_key:
    logger.warning("No GEMINI_API_KEY configured; collection will use fallback data only")


@mcp.tool()
def list_target_positions() -> List[Dict[str, Any]]:
    """
    Lists the target positions under study with the number of postings collected for each,
    whether any data has been collected, and the company filter in effect.

    Returns:
        List[Dict]: Target positions with `posting_count`, `collected` and `filter` fields
    """
    collected = session.collected_position_ids
    return [
        {
            **position.model_dump(),
            "posting_count": session.posting_count(position.id),
            "collected": position.id in collected,
            "filter": session.filter_for(position.id).model_dump(mode="json"),
        }
        for position in session.positions
    ]


@mcp.tool()
def get_collection_options() -> Dict[str, List[str]]:
    """
    Lists the locations and competitor companies that can be used in filters.

    Returns:
        Dict: `locations` (fixed city list) and `competitors` (distinct competitors of the seed positions)
    """
    return {"locations": list(LOCATIONS), "competitors": list(ALL_COMPETITORS)}


@mcp.tool()
def add_target_position(name: str, responsibilities: str, keywords: str = "", competitors: str = "") -> Dict[str, Any]:
    """
    Adds a target position to the session.

    Args:
        name: Position name (required)
        responsibilities: Position responsibilities (required)
        keywords: Search keywords separated by commas or spaces
        competitors: Competitor company names separated by commas or spaces

    Returns:
        Dict: The created position, or an error message
    """
    try:
        position = session.add_position(create_position(name, responsibilities, keywords, competitors))
    except ValueError as e:
        return {"error": str(e)}
    logger.info(f"Added target position {position.id} ({position.name})")
    return position.model_dump()


@mcp.tool()
def import_target_positions(path: str) -> Dict[str, Any]:
    """
    Imports target positions from an Excel workbook (.xlsx/.xls, first sheet) or a CSV file
    with a header row.

    Recognized headers: 岗位名称/岗位/Position/name, 岗位职责/职责/Responsibilities/responsibilities,
    关键词/搜索关键词/Keywords/keywords, 竞品公司/竞品/Competitors/competitors.

    Args:
        path: Path to the .xlsx, .xls or .csv file

    Returns:
        Dict: Number of positions added and rows rejected
    """
    try:
        report = import_positions(path)
    except (OSError, UnicodeDecodeError, csv.Error, ValueError) as e:
        logger.error(f"Failed to import positions from {path}: {e}")
        return {"error": f"Could not read {path}: {e}"}

    added = session.add_positions(report.positions)
    return {"added": added, "rejected": report.rejected}


@mcp.tool()
async def collect_market_data(position_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Collects simulated market postings for one target position, or for all of them
    sequentially when no position id is given.

    Args:
        position_id: Target position id (optional)

    Returns:
        List[Dict]: One outcome per position with the number of postings added
    """
    try:
        if position_id:
            outcomes = [await collector.collect(position_id)]
        else:
            outcomes = await collector.collect_all()
    except KeyError as e:
        return [{"error": str(e)}]
    return [
        {"position_id": o.position_id, "added": o.added, "used_fallback": o.used_fallback, "error": o.error}
        for o in outcomes
    ]


@mcp.tool()
def list_postings(position_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Lists collected postings, optionally only those of one target position.

    Args:
        position_id: Target position id (optional)

    Returns:
        List[Dict]: Postings in arrival order
    """
    return [posting.model_dump() for posting in session.postings_for(position_id)]


@mcp.tool()
def set_position_filter(position_id: str, mode: str = "ALL", companies: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Sets the company filter of a target position.

    Args:
        position_id: Target position id
        mode: ALL, ONLY_COMPETITORS or CUSTOM
        companies: Company names to keep when mode is CUSTOM (an empty list keeps nothing)

    Returns:
        Dict: The filter now in effect, or an error message
    """
    try:
        position_filter = PositionFilter(mode=FilterMode(mode.upper()), selected_companies=frozenset(companies or []))
        session.set_filter(position_id, position_filter)
    except (KeyError, ValueError) as e:
        return {"error": str(e)}
    return {"position_id": position_id, **position_filter.model_dump(mode="json")}


@mcp.tool()
def get_salary_benchmarks(locations: Optional[List[str]] = None, search: str = "") -> Dict[str, Any]:
    """
    Computes monthly and yearly salary benchmarks (min, P25, median, P75, max) per target position.

    Args:
        locations: Location substrings to keep (empty means all locations)
        search: Case-insensitive position name filter

    Returns:
        Dict: Per-position results and the valid/total data coverage
    """
    report = session.benchmark(locations or [], search)
    logger.info(f"Benchmarks computed for {len(report.results)} positions ({report.coverage.valid}/{report.coverage.total} valid)")
    return report.model_dump(mode="json")


@mcp.tool()
def export_salary_benchmarks(path: str, locations: Optional[List[str]] = None, search: str = "") -> str:
    """
    Exports the salary benchmarks to an .xlsx workbook (sheet 薪酬分析报表) or a CSV file.

    Args:
        path: Destination path ending in .xlsx or .csv
        locations: Location substrings to keep (empty means all locations)
        search: Case-insensitive position name filter

    Returns:
        str: Summary of the export
    """
    report = session.benchmark(locations or [], search)
    if not report.results:
        return "No benchmark data to export. Collect market data first."
    try:
        count = export_results(report.results, path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to export benchmarks to {path}: {e}")
        return f"Export failed: {e}"
    return f"Exported {count} positions to {path}"


if __name__ == "__main__":
    try:
        logger.info(f"Python version: {sys.version}")
        logger.info(f"Environment variables: TRANSPORT={os.environ.get('TRANSPORT')}, HOST={os.environ.get('HOST')}, PORT={os.environ.get('PORT')}")
        logger.info(f"Starting salary benchmark MCP server with {trspt} transport ({host}:{port}) and stateless_http={stateless_http}...")
        mcp.run(transport=trspt)

    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error(f"Fatal error starting server: {e}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        sys.exit(1)
