"""Printable HTML documents and CSV exports for vehicle records."""

import csv
import io
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from jinja2 import Environment

from .catalog import BRAKE_CORNERS, ENUM_FIELDS, ServiceCategory, option_matches
from .ordering import timestamp_value
from .record import VehicleRecord
from .service_item import ServiceItem

CSV_HEADERS = [
    "ID",
    "User ID",
    "Reg Number",
    "Brand",
    "Model",
    "Year",
    "Kilometers",
    "Gearbox",
    "Motive Power",
    "Drive Mode",
    "Brake Front Left",
    "Brake Front Right",
    "Brake Rear Left",
    "Brake Rear Right",
    "Scanning Type",
    "Scanning Done",
    "Scanning Urgent",
    "Scanning Later",
    "Engine Services",
    "Chassis Services",
    "Additional Info",
    "Registered On",
]

TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"

# =============================================================================
# Formatting helpers
# =============================================================================


def _as_datetime(ts: Any) -> Optional[datetime]:
    if isinstance(ts, datetime):
        return ts.astimezone() if ts.tzinfo is not None else ts
    seconds = timestamp_value(ts)
    if not seconds:
        return None
    try:
        return datetime.fromtimestamp(seconds)
    except (ValueError, OverflowError, OSError):
        # Outside the platform's representable range
        return None


def format_timestamp(ts: Any) -> str:
    """Local date/time string, or '' when there is no timestamp."""
    dt = _as_datetime(ts)
    return dt.strftime(TIMESTAMP_FORMAT) if dt else ""


def display_value(value: Any) -> str:
    """Text for a scalar in the printed document; blanks show as N/A."""
    if value is None or value == "":
        return "N/A"
    return str(value)


def cell(value: Any) -> str:
    return "" if value is None else str(value)


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def summarize_service(item: ServiceItem) -> str:
    """e.g. 'Oil change (Done, Urgent)' or 'Belt replacement (Pending)'."""
    flags = item.active_flags
    return f"{item.type} ({', '.join(flags) if flags else 'Pending'})"


def summarize_services(items: Iterable[ServiceItem]) -> str:
    return "; ".join(summarize_service(i) for i in items)


def csv_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"vehicle_service_records_{day.isoformat()}.csv"


# =============================================================================
# CSV export
# =============================================================================


def make_csv_row(record: VehicleRecord) -> List[str]:
    brakes = record.brake_percentages
    scan = record.scan
    return [
        cell(record.id),
        cell(record.user_id),
        cell(record.reg_number),
        cell(record.brand),
        cell(record.model),
        cell(record.year),
        cell(record.kilometers),
        cell(record.gearbox),
        cell(record.motive_power),
        cell(record.drive_mode),
        *(cell(brakes.get(corner)) for corner in BRAKE_CORNERS),
        cell(scan.type),
        yes_no(scan.done),
        yes_no(scan.urgent),
        yes_no(scan.later),
        summarize_services(record.engine_services),
        summarize_services(record.chassis_services),
        cell(record.additional_info),
        format_timestamp(record.timestamp),
    ]


def render_csv(records: Iterable[VehicleRecord]) -> str:
    """
    Render records as CSV text, rows in the order given.

    Every cell is quoted and embedded quotes are doubled.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(make_csv_row(record))
    return buf.getvalue()


# =============================================================================
# Print document
# =============================================================================

PRINT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Vehicle Service Record - {{ title }}</title>
<style>
  body { font-family: Arial, sans-serif; margin: 24px; color: #1f2937; }
  h1 { font-size: 20px; margin-bottom: 4px; }
  h2 { font-size: 15px; margin: 18px 0 6px; border-bottom: 1px solid #9ca3af; }
  table { border-collapse: collapse; width: 100%; font-size: 12px; }
  th, td { border: 1px solid #d1d5db; padding: 4px 6px; text-align: left; }
  th { background: #f3f4f6; }
  td.flag { text-align: center; width: 60px; }
  .option { margin-right: 14px; color: #6b7280; }
  .option.selected { font-weight: bold; color: #111827; }
  .info { white-space: pre-wrap; border: 1px solid #d1d5db; padding: 8px; min-height: 40px; font-size: 12px; }
  .meta { font-size: 11px; color: #6b7280; }
</style>
</head>
<body>
<h1>Vehicle Service Record</h1>
<div class="meta">Record ID: {{ record_id }}{% if registered %} | Registered On: {{ registered }}{% endif %}</div>

<h2>Vehicle Information</h2>
<table>
{% for label, value in vehicle_rows %}
  <tr><th>{{ label }}</th><td>{{ value }}</td></tr>
{% endfor %}
{% for label, options in enum_rows %}
  <tr><th>{{ label }}</th><td>
  {%- for option, selected in options %}
    <span class="option{% if selected %} selected{% endif %}">{% if selected %}&#9746;{% else %}&#9744;{% endif %} {{ option }}</span>
  {%- endfor %}
  </td></tr>
{% endfor %}
</table>

{% for label, items in service_sections %}
<h2>{{ label }}</h2>
<table>
  <tr><th>Type</th><th>Done</th><th>Urgent</th><th>Later</th></tr>
  {% for item in items %}
  <tr>
    <td>{{ item.type }}</td>
    <td class="flag">{% if item.done %}&#10003;{% endif %}</td>
    <td class="flag">{% if item.urgent %}&#10003;{% endif %}</td>
    <td class="flag">{% if item.later %}&#10003;{% endif %}</td>
  </tr>
  {% endfor %}
</table>
{% endfor %}

<h2>Vehicle Scanning</h2>
<table>
  <tr><th>Type</th><th>Done</th><th>Urgent</th><th>Later</th></tr>
  <tr>
    <td>{{ scan_type }}</td>
    <td class="flag">{% if scan.done %}&#10003;{% endif %}</td>
    <td class="flag">{% if scan.urgent %}&#10003;{% endif %}</td>
    <td class="flag">{% if scan.later %}&#10003;{% endif %}</td>
  </tr>
</table>

<h2>Brake Percentages</h2>
<table>
  <tr><th></th><th>Left</th><th>Right</th></tr>
  <tr><th>Front</th><td>{{ brakes.frontLeft }}</td><td>{{ brakes.frontRight }}</td></tr>
  <tr><th>Rear</th><td>{{ brakes.rearLeft }}</td><td>{{ brakes.rearRight }}</td></tr>
</table>

<h2>Additional Information</h2>
<div class="info">{{ additional_info }}</div>
{% if auto_print %}
<script>window.onload = function () { window.focus(); window.print(); };</script>
{% endif %}
</body>
</html>
"""

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_print_template = _env.from_string(PRINT_TEMPLATE)


def catalog_items(record: VehicleRecord, category: ServiceCategory) -> List[ServiceItem]:
    """
    One row per catalog entry, flags taken from the record's matching item.

    Catalog entries the record lacks print unflagged.
    """
    by_type = {}
    for item in record.services(category):
        by_type.setdefault(item.type, item)
    return [by_type.get(t) or ServiceItem(type=t) for t in category.catalog]


def render_print_html(record: VehicleRecord, auto_print: bool = True) -> str:
    """Render one record as a standalone printable HTML document."""
    vehicle_rows = [
        ("Reg Number", display_value(record.reg_number)),
        ("Brand", display_value(record.brand)),
        ("Model", display_value(record.model)),
        ("Year", display_value(record.year)),
        ("Kilometers", display_value(record.kilometers)),
    ]
    enum_rows = [
        (label, [(opt, option_matches(opt, record.get_scalar(key))) for opt in options])
        for key, (label, options) in ENUM_FIELDS.items()
    ]
    service_sections = [
        (category.label, catalog_items(record, category)) for category in ServiceCategory
    ]
    brakes = {corner: cell(record.brake_percentages.get(corner)) for corner in BRAKE_CORNERS}

    return _print_template.render(
        title=display_value(record.reg_number),
        record_id=display_value(record.id),
        registered=format_timestamp(record.timestamp),
        vehicle_rows=vehicle_rows,
        enum_rows=enum_rows,
        service_sections=service_sections,
        scan=record.scan,
        scan_type=display_value(record.scan.type),
        brakes=brakes,
        additional_info=cell(record.additional_info),
        auto_print=auto_print,
    )
