"""CSV storage helpers for crawled locations."""

import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from rvis_crawler.models import LocationRecord

logger = logging.getLogger(__name__)

CSV_HEADER = ("county", "name", "phone", "address", "lat", "lng")

PathLike = Union[str, Path]


def init_output(path: PathLike) -> Path:
    """Create (or truncate) the output file and write the header row."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", newline="", encoding="utf-8") as fh:
        csv.writer(fh).writerow(CSV_HEADER)
    logger.info("Initialised output file %s", output)
    return output


def _prepare_row(record: LocationRecord) -> List[str]:
    return [
        record.county or "",
        record.name or "",
        record.phone or "",
        record.address or "",
        _format_coordinate(record.lat),
        _format_coordinate(record.lng),
    ]


def _format_coordinate(value: Optional[float]) -> str:
    if value is None:
        return ""
    return repr(float(value))


def _parse_coordinate(value: str) -> Optional[float]:
    if value == "":
        return None
    return float(value)


def append_records(path: PathLike, records: Iterable[LocationRecord]) -> int:
    """Append one page worth of records and return how many were written."""
    rows = [_prepare_row(record) for record in records]
    with Path(path).open("a", newline="", encoding="utf-8") as fh:
        csv.writer(fh).writerows(rows)
    logger.debug("Appended %d rows to %s", len(rows), path)
    return len(rows)


def read_records(path: PathLike) -> List[LocationRecord]:
    """Load a previously written output file back into records."""
    records: List[LocationRecord] = []
    with Path(path).open("r", newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        if tuple(reader.fieldnames or ()) != CSV_HEADER:
            raise ValueError(f"unexpected CSV header in {path}: {reader.fieldnames}")
        for row in reader:
            records.append(
                LocationRecord(
                    county=row["county"],
                    name=row["name"],
                    phone=row["phone"],
                    address=row["address"],
                    lat=_parse_coordinate(row["lat"]),
                    lng=_parse_coordinate(row["lng"]),
                )
            )
    return records
