"""
Command-line entry point for the booking engine.

Runs against the seeded in-memory demo store, so bookings only live for
the duration of one command.

Usage:
    Availability:  python main.py availability barber-ali 2025-09-11 --duration 45
    Book:          python main.py book barber-ali 2025-09-11 10:00 haircut beard-trim
    Demo:          python main.py demo [--scenario rush]
"""

import argparse
import asyncio
import json
import logging
import sys

from barbershop.config import settings
from barbershop.errors import FormatError, NotFoundError
from barbershop.logging_context import set_request_id
from barbershop.tools.booking import BookingOperations

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{settings.app_name} command line")
    sub = parser.add_subparsers(dest="command", required=True)

    avail = sub.add_parser("availability", help="List slots for a barber and date")
    avail.add_argument("barber_id")
    avail.add_argument("date", help="YYYY-MM-DD")
    avail.add_argument(
        "--duration", type=int, default=settings.shop.default_service_duration,
        help="Service duration in minutes",
    )
    avail.add_argument("--days", type=int, default=1, help="Number of consecutive days")

    book = sub.add_parser("book", help="Validate and create a booking")
    book.add_argument("barber_id")
    book.add_argument("date", help="YYYY-MM-DD")
    book.add_argument("time", help="HH:MM")
    book.add_argument("service_ids", nargs="+")
    book.add_argument("--customer", default="cli-customer")

    demo = sub.add_parser("demo", help="Play a scripted console scenario")
    demo.add_argument("--scenario", default="booking")
    return parser


async def _run(args: argparse.Namespace) -> dict:
    from console_demo import build_demo_store

    ops = BookingOperations(build_demo_store())
    if args.command == "availability":
        if args.days > 1:
            days = await ops.get_availability_range(
                args.barber_id, args.date, args.days, args.duration
            )
            return {"days": days}
        return await ops.get_availability(args.barber_id, args.date, args.duration)
    return await ops.validate_and_book(
        args.barber_id, args.date, args.time, args.service_ids, args.customer
    )


def main(argv: list[str]) -> int:
    args = _build_parser().parse_args(argv)
    request_id = set_request_id()
    logger.debug("Running '%s' as %s", args.command, request_id)

    if args.command == "demo":
        from console_demo import ConsoleSession

        ConsoleSession().run_scenario(args.scenario)
        return 0

    try:
        result = asyncio.run(_run(args))
    except FormatError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2
    except NotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 3

    print(json.dumps(result, indent=2))
    return 0 if result.get("success", True) else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
