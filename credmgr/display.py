"""Console table for record lists. Columns are listed explicitly; secrets stay masked."""

from typing import Callable, List, Sequence, Tuple

from .models import Record


DT_FORMAT = "%Y-%m-%d %H:%M:%S"
NULL_VALUE = "-"

COLUMNS: List[Tuple[str, Callable[[Record], str]]] = [
    ("Name", lambda r: r.name),
    ("Identifier", lambda r: r.identifier),
    ("Secret", lambda r: str(r.secret)),
    ("Created", lambda r: r.created_at.strftime(DT_FORMAT)),
    ("Updated", lambda r: r.updated_at.strftime(DT_FORMAT) if r.updated_at else NULL_VALUE),
    ("Version", lambda r: str(r.version)),
]


def format_table(records: Sequence[Record]) -> str:
    """
    Render records as a padded table with a 1-based "No" column.

    Returns "No accounts." for an empty sequence.
    """
    if not records:
        return "No accounts."

    headers = ["No"] + [title for title, _ in COLUMNS]
    rows = [[str(i)] + [cell(r) for _, cell in COLUMNS] for i, r in enumerate(records, 1)]
    widths = [max(len(row[c]) for row in [headers] + rows) for c in range(len(headers))]

    def line(cells):
        return " | ".join(text.ljust(width) for text, width in zip(cells, widths)).rstrip()

    out = [line(headers), "-+-".join("-" * w for w in widths)]
    out.extend(line(row) for row in rows)
    return "\n".join(out)
