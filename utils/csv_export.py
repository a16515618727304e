"""CSV rendering for spreadsheet downloads."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Sequence

from flask import Response


# Excel only detects UTF-8 when the file starts with a byte-order mark.
BOM = "\ufeff"


def render_csv(header: Sequence[object], rows: Iterable[Sequence[object]]) -> str:
    """Return CSV text with every field quoted and a leading BOM."""

    out = io.StringIO()
    out.write(BOM)
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["" if value is None else value for value in header])
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return out.getvalue()


def csv_response(content: str, filename: str) -> Response:
    """Wrap CSV text in an attachment download response."""

    response = Response(content.encode("utf-8"), mimetype="text/csv")
    response.headers["Content-Type"] = "text/csv; charset=utf-8"
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response
