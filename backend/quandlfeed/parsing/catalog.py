from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from quandlfeed.exceptions import ParsingError
from quandlfeed.schemas.data_source import DataSource

DEFAULT_ANCHOR_ID = "Financial-Data"


def split_row_text(text: str) -> list[str]:
    return [part for part in text.split("\n") if part]


def data_source_from_row(text: str) -> DataSource:
    # Columns on the page: name, dataset count, description, premium flag, code.
    fields = split_row_text(text)
    try:
        return DataSource(
            name=fields[0],
            count=int(fields[1].replace(",", "")),
            description=fields[2],
            code=fields[4],
        )
    except (IndexError, ValueError) as exc:
        raise ParsingError(f"Unexpected data source row: {fields!r}") from exc


def parse_data_sources(html: str, anchor_id: str = DEFAULT_ANCHOR_ID) -> list[DataSource] | None:
    """Read the data source table that follows the ``anchor_id`` heading.

    Returns ``None`` when the anchor is missing from the page. Rows inside
    ``thead`` are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    anchor = soup.find(id=anchor_id)
    if anchor is None:
        return None

    # The heading is followed by a whitespace node, then the table.
    sibling = anchor.next_sibling
    table = sibling.next_sibling if sibling is not None else None
    if not isinstance(table, Tag):
        raise ParsingError(f"No table found after #{anchor_id}")

    data_sources: list[DataSource] = []
    for section in table.children:
        if not isinstance(section, Tag):
            continue
        for row in section.children:
            if not isinstance(row, Tag) or row.name != "tr":
                continue
            if row.parent.name == "thead":
                continue
            data_sources.append(data_source_from_row(row.get_text()))
    return data_sources
