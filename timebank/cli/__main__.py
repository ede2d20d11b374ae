"""
timebank CLI - Command-line front end for a local time-credit ledger.

Usage:
    timebank --as ID register NAME [--skill S]...
    timebank balance [ID]
    timebank reputation [ID]
    timebank account [ID]
    timebank --as ID offer create CATEGORY DESCRIPTION --time N --cost N
    timebank offer show OFFER_ID
    timebank offer list [--provider P] [--category C] [--active | --inactive]
    timebank --as ID offer deactivate OFFER_ID
    timebank --as ID request create OFFER_ID
    timebank --as ID request complete REQUEST_ID
    timebank request show REQUEST_ID
    timebank [--as ID] request list [--mine [--role provider]] [--status S]
    timebank request history REQUEST_ID
    timebank supply
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from timebank import ExchangeEngine, LedgerConfig, LedgerError
from timebank.cli.commands import (
    cmd_account,
    cmd_balance,
    cmd_offer,
    cmd_register,
    cmd_reputation,
    cmd_request,
    cmd_supply,
)
from timebank.cli.commands.helpers import CallerRequiredError, positive_int
from timebank.events import LoggingEventSink
from timebank.models import RequestStatus

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timebank",
        description="Peer-to-peer time-credit exchange ledger",
    )
    parser.add_argument("--db", type=Path, default=None, help="Ledger database path")
    parser.add_argument(
        "--as", dest="caller", default=None, help="Identity to act as (or TIMEBANK_IDENTITY)"
    )
    parser.add_argument("--json", "-j", action="store_true", help="Output JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # register
    p_register = subparsers.add_parser("register", help="Register the caller")
    p_register.add_argument("name", help="Display name")
    p_register.add_argument("--skill", "-s", action="append", help="Skill tag (repeatable)")

    # balance / reputation / account
    for name, help_text in (
        ("balance", "Show a credit balance"),
        ("reputation", "Show a reputation score"),
        ("account", "Show an account"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("identity", nargs="?", help="Identity (defaults to the caller)")

    subparsers.add_parser("supply", help="Show total credits in circulation")

    # offer
    p_offer = subparsers.add_parser("offer", help="Service offers")
    offer_sub = p_offer.add_subparsers(dest="offer_action", required=True)

    offer_create = offer_sub.add_parser("create", help="Advertise a service")
    offer_create.add_argument("category", help="Skill category")
    offer_create.add_argument("description", help="What you will do")
    offer_create.add_argument(
        "--time", type=positive_int, required=True, help="Minutes the service takes"
    )
    offer_create.add_argument(
        "--cost", type=positive_int, required=True, help="Price in time-credits"
    )

    offer_show = offer_sub.add_parser("show", help="Show an offer")
    offer_show.add_argument("offer_id", type=int)

    offer_list = offer_sub.add_parser("list", help="List offers")
    offer_list.add_argument("--provider", "-p")
    offer_list.add_argument("--category", "-c")
    state = offer_list.add_mutually_exclusive_group()
    state.add_argument("--active", action="store_true")
    state.add_argument("--inactive", action="store_true")
    offer_list.add_argument("--limit", "-l", type=positive_int, default=50)

    offer_deactivate = offer_sub.add_parser("deactivate", help="Stop accepting requests")
    offer_deactivate.add_argument("offer_id", type=int)

    # request
    p_request = subparsers.add_parser("request", help="Service requests")
    request_sub = p_request.add_subparsers(dest="request_action", required=True)

    request_create = request_sub.add_parser("create", help="Request an offer")
    request_create.add_argument("offer_id", type=int)

    request_complete = request_sub.add_parser("complete", help="Settle a request (provider)")
    request_complete.add_argument("request_id", type=int)

    request_show = request_sub.add_parser("show", help="Show a request")
    request_show.add_argument("request_id", type=int)

    request_list = request_sub.add_parser("list", help="List requests")
    request_list.add_argument("--mine", action="store_true", help="Only the caller's requests")
    request_list.add_argument(
        "--role", choices=["requester", "provider"], default="requester"
    )
    request_list.add_argument("--status", choices=[s.value for s in RequestStatus])
    request_list.add_argument("--limit", "-l", type=positive_int, default=50)

    request_history = request_sub.add_parser("history", help="Show a request's audit trail")
    request_history.add_argument("request_id", type=int)

    return parser


COMMANDS = {
    "register": cmd_register,
    "balance": cmd_balance,
    "reputation": cmd_reputation,
    "account": cmd_account,
    "supply": cmd_supply,
    "offer": cmd_offer,
    "request": cmd_request,
}


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = LedgerConfig.from_env(db_path=args.db)
        engine = ExchangeEngine.sqlite(config=config, sinks=[LoggingEventSink()])
    except (ValueError, OSError) as e:
        logger.error(f"Failed to open ledger: {e}")
        sys.exit(1)

    try:
        COMMANDS[args.command](args, engine)
    except (LedgerError, CallerRequiredError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)
    finally:
        engine.close()


if __name__ == "__main__":
    main()
