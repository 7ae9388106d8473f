"""
Domain service: Tabular rendering and CSV export of point statistics.

The same formatted strings back both the on-screen table and the CSV file,
so what the user sees is exactly what they download.
"""
from datetime import date
from typing import Optional, Sequence
import logging

import pandas as pd

from app.domain.errors import NoData
from app.domain.models import PointStatistic

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["id", "lat", "lng", "ndvi_mean", "evi_mean"]

COORDINATE_DECIMALS = 6
INDEX_DECIMALS = 4


def format_row(stat: PointStatistic) -> list[str]:
    """Format one statistic at fixed precision, in column order."""
    return [
        str(stat.id),
        f"{stat.lat:.{COORDINATE_DECIMALS}f}",
        f"{stat.lng:.{COORDINATE_DECIMALS}f}",
        f"{stat.ndvi_mean:.{INDEX_DECIMALS}f}",
        f"{stat.evi_mean:.{INDEX_DECIMALS}f}",
    ]


def to_table(stats: Sequence[PointStatistic]) -> tuple[list[str], list[list[str]]]:
    """
    Render statistics as a header and rows of strings.

    Args:
        stats: Point statistics in display order

    Returns:
        Tuple of (header, rows)
    """
    return list(TABLE_COLUMNS), [format_row(stat) for stat in stats]


def to_flat_file(stats: Sequence[PointStatistic]) -> bytes:
    """
    Serialize statistics as UTF-8 CSV with a fixed header line.

    Args:
        stats: Point statistics in display order

    Returns:
        CSV content as bytes

    Raises:
        NoData: If there are no statistics to export
    """
    if not stats:
        raise NoData("No point statistics to export; extract statistics first")

    header, rows = to_table(stats)
    df = pd.DataFrame(rows, columns=header)
    csv_bytes = df.to_csv(index=False, lineterminator="\n").encode("utf-8")

    logger.info(f"Exported {len(rows)} rows ({len(csv_bytes)} bytes)")
    return csv_bytes


def export_filename(day: Optional[date] = None) -> str:
    """Download name for a CSV export, stamped with the given day."""
    day = day or date.today()
    return f"point_stats_{day.isoformat()}.csv"
