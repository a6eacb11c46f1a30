"""City coordinate table loader: built-in table extended by an optional Excel workbook."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Optional

from openpyxl import load_workbook

from ..config import settings
from ..models.domain import Coordinate
from .locations import CITY_COORDINATES, REGION_COORDINATES, normalize_city, normalize_region

logger = logging.getLogger(__name__)


def _load_cities_from_file(source: Path) -> dict[str, Coordinate]:
    """Load city coordinates from a workbook with City, Latitude and Longitude columns."""
    if not source.exists():
        raise FileNotFoundError(f"City coordinates workbook not found: {source}")

    wb = load_workbook(source, data_only=True, read_only=True)
    sheet = wb.active
    rows = sheet.iter_rows(min_row=1, values_only=True)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"City coordinates workbook '{source}' is empty.")

    header_map = {name: idx for idx, name in enumerate(header)}
    missing_columns = {"City", "Latitude", "Longitude"} - set(header_map)
    if missing_columns:
        raise ValueError(f"City coordinates workbook missing columns: {', '.join(sorted(missing_columns))}")

    cities: dict[str, Coordinate] = {}
    for row in rows:
        city_value = row[header_map["City"]]
        lat_value = row[header_map["Latitude"]]
        lon_value = row[header_map["Longitude"]]
        if not city_value or lat_value is None or lon_value is None:
            continue
        try:
            cities[normalize_city(str(city_value))] = Coordinate(float(lat_value), float(lon_value))
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid city row '{city_value}': {e}")
    return cities


@functools.lru_cache(maxsize=1)
def load_city_table(source: Optional[Path] = None) -> dict[str, Coordinate]:
    """Return the normalized city -> coordinate table.

    Rows from the configured workbook override built-in entries with the same name.
    """
    table = {normalize_city(name): Coordinate(*coords) for name, coords in CITY_COORDINATES.items()}
    workbook_path = source or settings.city_coordinates_file
    if workbook_path is not None:
        overrides = _load_cities_from_file(workbook_path)
        logger.info(f"Loaded {len(overrides)} city coordinates from {workbook_path}")
        table.update(overrides)
    return table


def load_region_table() -> dict[str, Coordinate]:
    return {normalize_region(code): Coordinate(*coords) for code, coords in REGION_COORDINATES.items()}
