"""Core data models shared by the RVIS crawl pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ScriptLocation:
    """Coordinate entry scraped from the page's inline ``locations`` array."""

    label: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


@dataclass(slots=True)
class TableRow:
    """Text columns of one data row in the results table."""

    county: str
    name: str
    phone: str
    address: str


@dataclass(slots=True)
class LocationRecord:
    """Reconciled location as written to the output CSV."""

    county: str = ""
    name: str = ""
    phone: str = ""
    address: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
