#!/usr/bin/env python3
"""Tests for the printable document and CSV export."""

import csv
import io
from datetime import date, datetime

import pytest

from records import csv_filename, format_timestamp, normalize_record, render_csv, render_print_html
from records.catalog import CHASSIS_SERVICES, ENGINE_SERVICES, MOTIVE_POWER_OPTIONS
from records.report import CSV_HEADERS, summarize_service, summarize_services
from records.service_item import ServiceItem


def parse(text):
    return list(csv.reader(io.StringIO(text, newline="")))


@pytest.fixture
def record():
    return normalize_record(
        {
            "id": "rec-1",
            "userId": "user-1",
            "regNumber": "AB123",
            "brand": "Toyota",
            "model": "Corolla",
            "year": 2018,
            "kilometers": 84000,
            "gearbox": "Manual",
            "motivePower": "Diesel",
            "driveMode": "4 x 4",
            "engineServices": [
                {"type": "Oil change", "done": True, "urgent": True, "later": False},
                {"type": "Belt replacement", "done": False, "urgent": False, "later": False},
            ],
            "chassisServices": [
                {"type": "Rear brake repair", "done": False, "urgent": False, "later": True},
            ],
            "vehicleScanning": [{"type": "OBD scan", "done": True, "urgent": False, "later": False}],
            "brakePercentages": {"frontLeft": "70", "rearRight": 55},
            "additionalInfo": "Line one\nLine two",
            "timestamp": datetime(2024, 5, 3, 14, 7, 9),
        }
    )


# =============================================================================
# Helpers
# =============================================================================


class TestSummaries:
    """Tests for service summaries."""

    def test_active_flags_joined(self):
        assert summarize_service(ServiceItem("Oil change", done=True, later=True)) == "Oil change (Done, Later)"

    def test_pending_when_no_flags(self):
        assert summarize_service(ServiceItem("Belt replacement")) == "Belt replacement (Pending)"

    def test_items_joined_with_semicolons(self):
        items = [ServiceItem("A", urgent=True), ServiceItem("B")]
        assert summarize_services(items) == "A (Urgent); B (Pending)"

    def test_empty_list(self):
        assert summarize_services([]) == ""


class TestFormatTimestamp:
    """Tests for format_timestamp."""

    def test_naive_datetime(self):
        assert format_timestamp(datetime(2024, 5, 3, 14, 7, 9)) == "03/05/2024, 14:07:09"

    @pytest.mark.parametrize("value", [None, "", "garbage"])
    def test_missing_is_empty(self, value):
        assert format_timestamp(value) == ""

    def test_milliseconds_match_seconds(self):
        assert format_timestamp(1714745229000) == format_timestamp(1714745229)
        assert format_timestamp(1714745229000) != ""

    def test_out_of_range_number_is_empty(self):
        assert format_timestamp(1e300) == ""


class TestCsvFilename:
    def test_dated_name(self):
        assert csv_filename(date(2024, 1, 2)) == "vehicle_service_records_2024-01-02.csv"


# =============================================================================
# CSV
# =============================================================================


class TestRenderCsv:
    """Tests for render_csv."""

    def test_header_row(self, record):
        rows = parse(render_csv([record]))
        assert rows[0] == CSV_HEADERS
        assert CSV_HEADERS[0] == "ID"
        assert CSV_HEADERS[-1] == "Registered On"

    def test_row_values(self, record):
        row = dict(zip(CSV_HEADERS, parse(render_csv([record]))[1]))
        assert row["ID"] == "rec-1"
        assert row["User ID"] == "user-1"
        assert row["Year"] == "2018"
        assert row["Drive Mode"] == "4 x 4"
        assert row["Brake Front Left"] == "70"
        assert row["Brake Front Right"] == ""
        assert row["Brake Rear Right"] == "55"
        assert row["Scanning Type"] == "OBD scan"
        assert row["Scanning Done"] == "Yes"
        assert row["Scanning Urgent"] == "No"
        assert row["Engine Services"] == "Oil change (Done, Urgent); Belt replacement (Pending)"
        assert row["Chassis Services"] == "Rear brake repair (Later)"
        assert row["Additional Info"] == "Line one\nLine two"
        assert row["Registered On"] == "03/05/2024, 14:07:09"

    def test_every_cell_quoted(self, record):
        text = render_csv([record])
        header_line = text.splitlines()[0]
        assert header_line == ",".join(f'"{h}"' for h in CSV_HEADERS)
        assert text.splitlines()[1].startswith('"rec-1","user-1","AB123"')

    def test_comma_and_quote_round_trip(self, record):
        record.additional_info = 'Noise at 80 km/h, "rattle" from rear'
        text = render_csv([record])
        assert '"Noise at 80 km/h, ""rattle"" from rear"' in text
        row = dict(zip(CSV_HEADERS, parse(text)[1]))
        assert row["Additional Info"] == 'Noise at 80 km/h, "rattle" from rear'

    def test_missing_timestamp_is_empty(self, record):
        record.timestamp = None
        row = parse(render_csv([record]))[1]
        assert row[-1] == ""

    def test_millisecond_timestamp(self, record):
        record.timestamp = 1714745229000
        row = parse(render_csv([record]))[1]
        assert row[-1] == format_timestamp(1714745229)

    def test_rows_keep_given_order(self, record):
        other = normalize_record({"id": "rec-2"})
        rows = parse(render_csv([other, record]))
        assert [r[0] for r in rows[1:]] == ["rec-2", "rec-1"]


# =============================================================================
# Print document
# =============================================================================


class TestRenderPrintHtml:
    """Tests for render_print_html."""

    def test_standalone_document(self, record):
        html = render_print_html(record)
        assert html.startswith("<!DOCTYPE html>")
        assert "<link" not in html
        assert "<img" not in html
        assert "window.print()" in html

    def test_auto_print_can_be_disabled(self, record):
        assert "window.print()" not in render_print_html(record, auto_print=False)

    def test_selected_option_marked(self, record):
        html = render_print_html(record)
        assert '<span class="option selected">&#9746; Manual</span>' in html
        assert '<span class="option">&#9744; Auto</span>' in html

    def test_spaced_drive_mode_matches_option(self, record):
        assert '<span class="option selected">&#9746; 4x4</span>' in render_print_html(record)

    def test_all_options_listed_when_value_empty(self):
        html = render_print_html(normalize_record({"id": "x"}))
        for option in MOTIVE_POWER_OPTIONS:
            assert f'<span class="option">&#9744; {option}</span>' in html
        assert "option selected" not in html

    def test_invalid_value_marks_nothing(self, record):
        record.gearbox = "CVT"
        html = render_print_html(record)
        assert '<span class="option">&#9744; Auto</span>' in html
        assert '<span class="option">&#9744; Manual</span>' in html

    def test_every_catalog_item_printed(self, record):
        html = render_print_html(record)
        for service in ENGINE_SERVICES + CHASSIS_SERVICES:
            assert f"<td>{service}</td>" in html

    def test_catalog_items_printed_for_legacy_record(self):
        html = render_print_html(normalize_record({"id": "legacy"}))
        for service in ENGINE_SERVICES + CHASSIS_SERVICES:
            assert f"<td>{service}</td>" in html

    def test_brake_grid_leaves_missing_empty(self, record):
        html = render_print_html(record)
        assert "<tr><th>Front</th><td>70</td><td></td></tr>" in html
        assert "<tr><th>Rear</th><td></td><td>55</td></tr>" in html

    def test_missing_scalars_show_na(self):
        html = render_print_html(normalize_record({"id": "x"}))
        assert "<tr><th>Reg Number</th><td>N/A</td></tr>" in html

    def test_additional_info_keeps_line_breaks_and_escapes(self, record):
        record.additional_info = "First <b>line</b>\nSecond line"
        html = render_print_html(record)
        assert "First &lt;b&gt;line&lt;/b&gt;\nSecond line" in html
        assert "white-space: pre-wrap" in html

    def test_does_not_mutate_record(self, record):
        before = record.to_dict(include_id=True)
        render_print_html(record)
        assert record.to_dict(include_id=True) == before
