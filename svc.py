#!/usr/bin/env python3
"""
Unified CLI for vehicle service records.

Commands:
  register - Register a new vehicle service record
  list     - List all records, newest first
  show     - Show one record in full
  edit     - Change fields or service flags on a record
  delete   - Delete a record (asks for confirmation)
  export   - Export all records to CSV
  print    - Write the printable document for a record
"""

import argparse
import logging
import sys
import webbrowser
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional, Tuple

from records import (
    IdentityProvider,
    RecordsView,
    ServiceItem,
    VehicleRecord,
    YamlRecordStore,
    collection_path,
    begin_edit,
    blank_form,
    build_patch,
    csv_filename,
    format_timestamp,
    normalize_record,
    open_view,
    set_field,
    submit_record,
    toggle_service_flag,
)
from records.catalog import (
    BRAKE_CORNERS,
    DRIVE_MODE_OPTIONS,
    GEARBOX_OPTIONS,
    MOTIVE_POWER_OPTIONS,
    SERVICE_FLAGS,
    ServiceCategory,
)
from records.config import load_settings
from records.errors import AuthError, PersistenceError

# =============================================================================
# Formatting helpers
# =============================================================================


def format_value(value) -> str:
    """Format a scalar for display."""
    if value is None or value == "":
        return "-"
    return str(value)


def format_flags(item: ServiceItem) -> str:
    """Format an item's flags for display (e.g., 'Done, Urgent')."""
    return ", ".join(item.active_flags) or "-"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def flagged_summary(items: List[ServiceItem]) -> str:
    """Only the flagged items, e.g. 'Oil change (Done); Belt replacement (Later)'."""
    flagged = [f"{i.type} ({format_flags(i)})" for i in items if i.is_flagged]
    return "; ".join(flagged) if flagged else "-"


def make_records_table(records: List[VehicleRecord]) -> List[List[str]]:
    """Convert records to table rows."""
    rows = []
    for record in records:
        model = format_value(record.model)
        if record.year not in (None, ""):
            model += f" ({record.year})"
        km = f"{record.kilometers} km" if record.kilometers not in (None, "") else "-"
        rows.append(
            [
                record.id,
                format_value(record.reg_number),
                format_value(record.brand),
                model,
                km,
                format_value(record.gearbox),
                format_value(record.motive_power),
                format_value(record.drive_mode),
                truncate(flagged_summary(record.engine_services)),
                truncate(flagged_summary(record.chassis_services)),
                format_timestamp(record.timestamp) or "N/A",
            ]
        )
    return rows


def make_services_table(items: List[ServiceItem]) -> List[List[str]]:
    """One row per item with an index column for `edit --toggle`."""
    rows = []
    for i, item in enumerate(items):
        flags = ["x" if getattr(item, f) else "" for f in SERVICE_FLAGS]
        rows.append([str(i), item.type, *flags])
    return rows


def parse_assignment(text: str) -> Tuple[str, str]:
    """Split 'field=value' into its parts."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Expected FIELD=VALUE, got '{text}'")
    name, value = text.split("=", 1)
    return name.strip(), value


def parse_toggle(text: str) -> Tuple[str, int, str]:
    """Split 'category:index:flag' (e.g., 'engine:0:done')."""
    parts = text.split(":")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(
            f"Expected CATEGORY:INDEX:FLAG, got '{text}'"
        )
    category, index, flag = parts
    aliases = {"engine": ServiceCategory.ENGINE.value, "chassis": ServiceCategory.CHASSIS.value}
    category = aliases.get(category.lower(), category)
    if flag not in SERVICE_FLAGS:
        raise argparse.ArgumentTypeError(
            f"Flag must be one of {', '.join(SERVICE_FLAGS)}, got '{flag}'"
        )
    try:
        return category, int(index), flag
    except ValueError:
        raise argparse.ArgumentTypeError(f"Index must be a number, got '{index}'")


# =============================================================================
# Setup
# =============================================================================


def open_records(args) -> RecordsView:
    """Sign in and subscribe to the configured scope."""
    store = YamlRecordStore(args.data_dir)
    identity = IdentityProvider(args.data_dir / ".identity.yaml")
    return open_view(store, collection_path(args.app_id), identity, args.token)


def report_errors(view: RecordsView) -> bool:
    """Print any blocking error. Returns True if one was shown."""
    if view.auth_error:
        print(f"Error: {view.auth_error}")
        return True
    if view.error:
        print(f"Error: {view.error}")
        return True
    return False


def find_record(view: RecordsView, record_id: str) -> Optional[VehicleRecord]:
    record = view.get(record_id)
    if record is None:
        print(f"Error: No record with id '{record_id}'")
    return record


# =============================================================================
# Register command
# =============================================================================


def cmd_register(args):
    """Register a new vehicle service record."""
    store = YamlRecordStore(args.data_dir)
    identity = IdentityProvider(args.data_dir / ".identity.yaml")
    try:
        user_id = identity.sign_in(args.token)
    except AuthError as e:
        print(f"Error: Authentication failed: {e}")
        return 1

    session = begin_edit(normalize_record(blank_form()))
    fields = {
        "regNumber": args.reg_number,
        "kilometers": args.kilometers,
        "brand": args.brand,
        "model": args.model,
        "year": args.year,
        "gearbox": args.gearbox,
        "motivePower": args.motive_power,
        "driveMode": args.drive_mode,
        "additionalInfo": args.info or "",
        "vehicleScanning.type": args.scan or "",
    }
    for name, value in fields.items():
        set_field(session, name, value)
    for name, value in args.brake or []:
        set_field(session, f"brakePercentages.{name}", value)
    for category, index, flag in args.flag or []:
        toggle_service_flag(session, category, index, flag)

    record = session.working
    print(f"Registering service for {record.reg_number} ({record.brand} {record.model}):")
    flagged = flagged_summary(record.engine_services + record.chassis_services)
    print(f"  Services: {flagged}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    try:
        record_id = submit_record(store, collection_path(args.app_id), user_id, build_patch(session))
    except (AuthError, PersistenceError) as e:
        print(f"Error saving data: {e}")
        return 1
    print(f"Service registration successful! Document ID: {record_id}")
    return 0


# =============================================================================
# List / show commands
# =============================================================================


def cmd_list(args):
    """List all records, newest first."""
    view = open_records(args)
    if report_errors(view):
        return 1

    if not view.records:
        print("No records found. Register a service first!")
        return 0

    headers = [
        "ID",
        "Reg. No.",
        "Brand",
        "Model",
        "Kilometers",
        "Gearbox",
        "Motive Power",
        "Drive Mode",
        "Engine Services",
        "Chassis Services",
        "Registered On",
    ]
    print(f"Records: {len(view.records)}")
    print()
    print(tabulate(make_records_table(view.records), headers=headers, tablefmt="simple"))
    return 0


def cmd_show(args):
    """Show one record in full."""
    view = open_records(args)
    if report_errors(view):
        return 1
    record = find_record(view, args.record_id)
    if record is None:
        return 1

    print(f"Record:        {record.id}")
    print(f"Reg Number:    {format_value(record.reg_number)}")
    print(f"Vehicle:       {format_value(record.brand)} {format_value(record.model)} ({format_value(record.year)})")
    print(f"Kilometers:    {format_value(record.kilometers)}")
    print(f"Gearbox:       {format_value(record.gearbox)}")
    print(f"Motive Power:  {format_value(record.motive_power)}")
    print(f"Drive Mode:    {format_value(record.drive_mode)}")
    print(f"Registered On: {format_timestamp(record.timestamp) or 'N/A'}")
    print(f"User ID:       {format_value(record.user_id)}")
    print()

    headers = ["#", "Type", "Done", "Urgent", "Later"]
    for category in ServiceCategory:
        items = record.services(category)
        print(f"{category.label.upper()}:")
        if items:
            print(tabulate(make_services_table(items), headers=headers, tablefmt="simple"))
        else:
            print("  (none recorded)")
        print()

    print("VEHICLE SCANNING:")
    print(f"  {format_value(record.scan.type)} ({format_flags(record.scan)})")
    print()

    print("BRAKE PERCENTAGES:")
    for corner, label in BRAKE_CORNERS.items():
        print(f"  {label + ':':<13}{format_value(record.brake_percentages.get(corner))}")
    print()

    if record.additional_info:
        print("ADDITIONAL INFO:")
        for line in str(record.additional_info).splitlines():
            print(f"  {line}")
    return 0


# =============================================================================
# Edit command
# =============================================================================


def cmd_edit(args):
    """Change fields or service flags on a record."""
    view = open_records(args)
    if report_errors(view):
        return 1
    if not view.begin_edit(args.record_id):
        print(f"Error: {view.message}")
        return 1

    for name, value in args.set or []:
        if not view.set_field(name, value):
            print(f"Error: {view.message}")
            return 1
    for category, index, flag in args.toggle or []:
        if not view.toggle_service_flag(category, index, flag):
            print(f"Error: {view.message}")
            return 1

    # Compare against the same catalog fill the session started from
    before = begin_edit(view.get(args.record_id)).working.to_dict()
    after = view.session.working.to_dict()
    changes = [key for key, value in after.items() if before.get(key) != value]
    print(f"Editing record {args.record_id}:")
    if not changes:
        print("  (no changes)")
        view.cancel_edit()
        return 0
    for key in changes:
        print(f"  Changed: {key}")
    print()

    if args.dry_run:
        view.cancel_edit()
        print("(dry run - no changes made)")
        return 0

    if not view.save():
        print(view.message)
        return 1
    print(view.message)
    return 0


# =============================================================================
# Delete command
# =============================================================================


def cmd_delete(args):
    """Delete a record after confirmation."""
    view = open_records(args)
    if report_errors(view):
        return 1
    record = find_record(view, args.record_id)
    if record is None:
        return 1

    view.request_delete(record.id)
    print(f"Delete record {record.id} ({format_value(record.reg_number)})?")
    if not args.yes:
        answer = input("This cannot be undone. Type 'yes' to confirm: ")
        if answer.strip().lower() != "yes":
            view.cancel_delete()
            print("Delete cancelled.")
            return 0

    if not view.confirm_delete():
        print(view.message)
        return 1
    print(view.message)
    return 0


# =============================================================================
# Export / print commands
# =============================================================================


def cmd_export(args):
    """Export all records to CSV."""
    view = open_records(args)
    if report_errors(view):
        return 1

    text = view.export_csv()
    if text is None:
        print(view.notice)
        return 0

    output = args.output or Path(csv_filename())
    with open(output, "w", encoding="utf-8", newline="") as fp:
        fp.write(text)
    print(f"Exported {len(view.records)} records to {output}")
    return 0


def cmd_print(args):
    """Write the printable document for a record."""
    view = open_records(args)
    if report_errors(view):
        return 1

    html = view.print_record(args.record_id, auto_print=args.open)
    if html is None:
        print(f"Error: {view.message}")
        return 1

    output = args.output or Path(f"vehicle_service_{args.record_id}.html")
    with open(output, "w", encoding="utf-8") as fp:
        fp.write(html)
    print(f"Wrote printable record to {output}")

    if args.open:
        webbrowser.open(output.resolve().as_uri(), new=1)
    return 0


# =============================================================================
# Main
# =============================================================================


def main():
    settings = load_settings()

    parser = argparse.ArgumentParser(
        description="Vehicle service records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s register --reg-number AB123 --kilometers 84000 --brand Toyota \\
      --model Corolla --year 2018 --gearbox Auto --motive-power Petrol \\
      --drive-mode Front --flag engine:0:done --brake frontLeft=70
  %(prog)s list
  %(prog)s show <id>
  %(prog)s edit <id> --set kilometers=85000 --set brakePercentages.rearRight=55
  %(prog)s edit <id> --toggle chassis:4:urgent
  %(prog)s delete <id>
  %(prog)s export -o records.csv
  %(prog)s print <id> --open
""",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=settings.data_dir,
        help=f"Directory holding record files (default: {settings.data_dir})",
    )
    parser.add_argument(
        "--app-id",
        default=settings.app_id,
        help=f"Application id that scopes the records (default: {settings.app_id})",
    )
    parser.add_argument(
        "--token",
        default=settings.auth_token,
        help="Sign in with this token instead of anonymously",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Register subcommand
    register_parser = subparsers.add_parser(
        "register", help="Register a new vehicle service record"
    )
    register_parser.add_argument("--reg-number", required=True, help="Registration number")
    register_parser.add_argument("--kilometers", required=True, help="Odometer reading")
    register_parser.add_argument("--brand", required=True, help="Vehicle brand")
    register_parser.add_argument("--model", required=True, help="Vehicle model")
    register_parser.add_argument("--year", required=True, help="Model year")
    register_parser.add_argument("--gearbox", required=True, choices=GEARBOX_OPTIONS)
    register_parser.add_argument(
        "--motive-power", required=True, choices=MOTIVE_POWER_OPTIONS
    )
    register_parser.add_argument("--drive-mode", required=True, choices=DRIVE_MODE_OPTIONS)
    register_parser.add_argument(
        "--flag",
        type=parse_toggle,
        action="append",
        help="Set a service flag, CATEGORY:INDEX:FLAG (e.g., 'engine:0:done')",
    )
    register_parser.add_argument("--scan", help="Vehicle scanning description")
    register_parser.add_argument(
        "--brake",
        type=parse_assignment,
        action="append",
        help=f"Brake percentage, CORNER=VALUE ({', '.join(BRAKE_CORNERS)})",
    )
    register_parser.add_argument("--info", help="Additional information")
    register_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be registered without saving",
    )

    # List / show subcommands
    subparsers.add_parser("list", help="List all records, newest first")
    show_parser = subparsers.add_parser("show", help="Show one record in full")
    show_parser.add_argument("record_id", help="Record id")

    # Edit subcommand
    edit_parser = subparsers.add_parser(
        "edit", help="Change fields or service flags on a record"
    )
    edit_parser.add_argument("record_id", help="Record id")
    edit_parser.add_argument(
        "--set",
        type=parse_assignment,
        action="append",
        help=(
            "Set a field, FIELD=VALUE "
            "(e.g., 'kilometers=85000', 'brakePercentages.frontLeft=60', "
            "'vehicleScanning.type=OBD scan')"
        ),
    )
    edit_parser.add_argument(
        "--toggle",
        type=parse_toggle,
        action="append",
        help="Flip a service flag, CATEGORY:INDEX:FLAG (e.g., 'chassis:4:urgent')",
    )
    edit_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without saving",
    )

    # Delete subcommand
    delete_parser = subparsers.add_parser("delete", help="Delete a record")
    delete_parser.add_argument("record_id", help="Record id")
    delete_parser.add_argument(
        "--yes", action="store_true", help="Skip the confirmation prompt"
    )

    # Export subcommand
    export_parser = subparsers.add_parser("export", help="Export all records to CSV")
    export_parser.add_argument(
        "-o", "--output", type=Path, help="Output file (default: dated filename)"
    )

    # Print subcommand
    print_parser = subparsers.add_parser(
        "print", help="Write the printable document for a record"
    )
    print_parser.add_argument("record_id", help="Record id")
    print_parser.add_argument(
        "-o", "--output", type=Path, help="Output HTML file"
    )
    print_parser.add_argument(
        "--open",
        action="store_true",
        help="Open the document in a browser and show the print dialog",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Dispatch to command handler
    if args.command == "register":
        return cmd_register(args)
    elif args.command == "list":
        return cmd_list(args)
    elif args.command == "show":
        return cmd_show(args)
    elif args.command == "edit":
        return cmd_edit(args)
    elif args.command == "delete":
        return cmd_delete(args)
    elif args.command == "export":
        return cmd_export(args)
    elif args.command == "print":
        return cmd_print(args)

    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
