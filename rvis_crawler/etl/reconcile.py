"""Merge script coordinates with results-table rows into location records."""

import logging
from typing import List, Optional, Sequence

from rvis_crawler.models import LocationRecord, ScriptLocation, TableRow

logger = logging.getLogger(__name__)


def find_by_label(name: str, script_locations: Sequence[ScriptLocation]) -> Optional[ScriptLocation]:
    """First script location whose trimmed label equals ``name`` (trimmed)."""
    wanted = name.strip()
    for location in script_locations:
        if location.label is not None and location.label.strip() == wanted:
            return location
    return None


def merge(table_rows: Sequence[TableRow], script_locations: Sequence[ScriptLocation]) -> List[LocationRecord]:
    """Reconcile one page of table rows with its script coordinates.

    Every table row yields a record. Coordinates come from the first script
    location labelled with the row's name, otherwise from the script location
    at the same position. Script locations beyond the table's length are kept
    as coordinate-only records.
    """
    merged: List[LocationRecord] = []

    for row in table_rows:
        record = LocationRecord(
            county=row.county,
            name=row.name,
            phone=row.phone,
            address=row.address,
        )

        source = find_by_label(row.name, script_locations)
        if source is None:
            index = len(merged)
            if index < len(script_locations):
                source = script_locations[index]
                logger.debug("No label match for %r; using script location #%d", row.name, index)

        if source is not None:
            record.lat = source.lat
            record.lng = source.lng
        merged.append(record)

    for location in script_locations[len(table_rows):]:
        merged.append(
            LocationRecord(
                name=location.label or "",
                lat=location.lat,
                lng=location.lng,
            )
        )

    return merged
