"""Command-line interface."""

import argparse
import json
import logging
import sys

from pos_print.config import config, load_config
from pos_print.errors import PrintError
from pos_print.models import SaleTicket
from pos_print.service import PrintService


def _read_ticket(path: str):
    """Load a ticket JSON file; accepts the POS request body or a bare ticket."""
    with open(path, encoding="utf-8") as f:
        body = json.load(f)
    if isinstance(body, dict) and isinstance(body.get("ticket"), dict):
        return SaleTicket.from_dict(body["ticket"]), body.get("docType")
    return SaleTicket.from_dict(body), None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pos-print",
        description="Render POS sale tickets and send them to a thermal printer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s print ticket.json                  Print using the TICKET role
  %(prog)s print ticket.json --role FISCAL    Print on the printer mapped to FISCAL
  %(prog)s print ticket.json --width 58       Force the 58mm layout
  %(prog)s --type NETWORK --printer 192.168.1.87 test
  %(prog)s drawer                             Open the cash drawer
  %(prog)s status --role TICKET               Check the mapped printer
        """,
    )

    parser.add_argument(
        "--printer",
        metavar="DEVICE",
        help="Default printer: queue name, USB:vid:pid, device path or IP address",
    )
    parser.add_argument(
        "--type",
        choices=["USB", "NETWORK"],
        type=str.upper,
        help="Default printer connection type (default: PRINTER_TYPE or USB)",
    )
    parser.add_argument(
        "--settings",
        metavar="FILE",
        help="Role mapping file (default: PRINTER_SETTINGS_FILE or printer-settings.json)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    print_cmd = commands.add_parser("print", help="Print a sale ticket from a JSON file")
    print_cmd.add_argument("ticket", metavar="TICKET_JSON")
    print_cmd.add_argument("--role", help="Document role (default: docType in the file, or TICKET)")
    print_cmd.add_argument("--width", type=int, choices=[58, 76, 80], help="Paper width override (mm)")

    commands.add_parser("drawer", help="Open the cash drawer")

    test_cmd = commands.add_parser("test", help="Print a test page")
    test_cmd.add_argument("--role")

    status_cmd = commands.add_parser("status", help="Check printer readiness")
    status_cmd.add_argument("--role")

    return parser


def main(argv=None) -> int:
    """Main entry point with CLI argument parsing."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    load_config()
    if args.printer:
        config["printer_interface"] = args.printer
    if args.type:
        config["printer_type"] = args.type
    if args.settings:
        config["settings_file"] = args.settings

    service = PrintService()
    try:
        if args.command == "print":
            ticket, doc_type = _read_ticket(args.ticket)
            result = service.print_ticket(ticket, args.role or doc_type, args.width)
        elif args.command == "drawer":
            result = service.open_drawer()
        elif args.command == "test":
            result = service.test_printer(args.role)
        else:
            ready = service.check_status(args.role)
            print("ready" if ready else "not ready")
            return 0 if ready else 1
    except (OSError, ValueError, PrintError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        service.close()

    if result.success:
        print(result.message)
        return 0
    print(f"Error: {result.error}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
