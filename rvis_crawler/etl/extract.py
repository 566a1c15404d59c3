"""HTML helpers for the RVIS search pages: CSRF token and results table."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from rvis_crawler.models import TableRow

logger = logging.getLogger(__name__)

CSRF_FIELD = "_csrf"
RESULTS_TABLE_CLASS = re.compile(r"table")
MIN_ROW_CELLS = 4


class TokenMissing(LookupError):
    """The landing page carries no anti-forgery token."""


def extract_token(html: str) -> str:
    """Return the ``_csrf`` value from the hidden form field.

    Spring pages also expose the token as ``<meta name="_csrf">``; that is
    used when the hidden input is absent.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    field = soup.find("input", {"name": CSRF_FIELD})
    token = _strip_or_none(field.get("value")) if field else None
    if not token:
        meta = soup.find("meta", {"name": CSRF_FIELD})
        token = _strip_or_none(meta.get("content")) if meta else None

    if not token:
        raise TokenMissing(f"no {CSRF_FIELD} token found on landing page")
    return token


def extract_table_rows(html: str) -> List[TableRow]:
    """Parse the results table into rows of county, name, phone, address."""
    soup = BeautifulSoup(html or "", "html.parser")
    table = soup.find("table", class_=RESULTS_TABLE_CLASS)
    if table is None:
        logger.debug("No results table found in page")
        return []

    rows: List[TableRow] = []
    for index, tr in enumerate(_own_rows(table)):
        # Only a leading header row is skipped; a leading data row is kept.
        if index == 0 and tr.find("th", recursive=False) is not None:
            continue

        cells = [cell.get_text().strip() for cell in tr.find_all("td", recursive=False)]
        if len(cells) < MIN_ROW_CELLS:
            logger.debug("Skipping table row %d with %d cells", index, len(cells))
            continue

        rows.append(
            TableRow(
                county=cells[0],
                name=cells[1],
                phone=cells[2],
                address=cells[3],
            )
        )

    return rows


def _own_rows(table) -> list:
    """Rows of ``table`` itself, not of tables nested in its cells."""
    rows = []
    for child in table.find_all(["thead", "tbody", "tfoot", "tr"], recursive=False):
        if child.name == "tr":
            rows.append(child)
        else:
            rows.extend(child.find_all("tr", recursive=False))
    return rows


def _strip_or_none(value) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None
