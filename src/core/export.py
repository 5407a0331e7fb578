"""CSV downloads for report endpoints."""
import csv
import re

from django.http import HttpResponse

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9_.-]+")


def _cell(row, field):
    if callable(field):
        value = field(row)
    elif isinstance(row, dict):
        value = row.get(field)
    else:
        value = getattr(row, field, None)
    return "" if value is None else str(value)


def rows_to_csv_response(rows, columns, filename):
    """Render ``rows`` as an Excel-friendly CSV attachment.

    ``rows`` may be a queryset, model instances or plain dicts (report
    months). ``columns`` is a list of ``(field, header)`` pairs where
    ``field`` is an attribute/key name or a callable taking the row.
    """
    safe_name = _UNSAFE_FILENAME.sub("_", filename).strip("_") or "export"
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{safe_name}.csv"'
    response.write("\ufeff")

    writer = csv.writer(response)
    writer.writerow([header for _, header in columns])
    for row in rows.iterator() if hasattr(rows, "iterator") else rows:
        writer.writerow([_cell(row, field) for field, _ in columns])
    return response
