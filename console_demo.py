"""
Offline console demo: walks through availability and booking scenarios
against a seeded in-memory store.

Uses the real availability engine, validator, status machine, and store
exclusion check. No database, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario holiday
    python console_demo.py --scenario rush
"""

import argparse
import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional

from barbershop.config import settings
from barbershop.logging_context import set_request_id
from barbershop.schemas.booking_schema import Barber
from barbershop.schemas.company_schema import Holiday, Shift
from barbershop.tools.booking import BookingOperations
from barbershop.tools.store import InMemoryBookingStore, default_company_config

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_BARBERS = [
    Barber(id="barber-ali", name="Ali"),
    Barber(id="barber-sam", name="Sam"),
]


def build_demo_store(
    clock: Optional[Callable[[], datetime]] = None,
    holidays: Optional[list[Holiday]] = None,
) -> InMemoryBookingStore:
    """In-memory store with the default weekly schedule and two barbers."""
    config = default_company_config()
    if holidays:
        config = config.model_copy(update={"holidays": holidays})
    if clock is None:
        return InMemoryBookingStore(config=config, barbers=list(DEMO_BARBERS))
    return InMemoryBookingStore(config=config, barbers=list(DEMO_BARBERS), clock=clock)


def next_working_day(start: date) -> date:
    """First Monday-to-Thursday date after ``start`` (both shifts open)."""
    day = start + timedelta(days=1)
    while day.weekday() > 3:
        day += timedelta(days=1)
    return day


class ConsoleSession:
    """Scripted walkthroughs printed to the terminal."""

    SCENARIOS = ("booking", "holiday", "rush")

    def __init__(self) -> None:
        self.today = datetime.now(timezone.utc).date()
        self.day = next_working_day(self.today)

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show_result(self, result: dict[str, Any]) -> None:
        colour = GREEN if result.get("success") else YELLOW
        print(f"{colour}{result['message']}{RESET}")
        if "rejection" in result:
            self.system_log(f"Rejection reason: {result['rejection']['reason']}")

    def show_slots(self, availability: dict[str, Any], limit: int = 12) -> None:
        if not availability["shop_open"]:
            self.say(f"Shop closed on {availability['date']}.")
            return
        marks = [
            f"{s['start_time']}{'' if s['available'] else '*'}"
            for s in availability["slots"][:limit]
        ]
        more = len(availability["slots"]) - limit
        suffix = f" ... (+{more})" if more > 0 else ""
        self.say(f"{availability['date']}: {' '.join(marks)}{suffix}")
        self.system_log("* = booked")

    def run_scenario(self, scenario: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BARBERSHOP BOOKING ENGINE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Shop: {settings.shop.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

        set_request_id()
        handler = getattr(self, f"_scenario_{scenario}", None)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        asyncio.run(handler())

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    async def _scenario_booking(self) -> None:
        ops = BookingOperations(build_demo_store())
        barber = DEMO_BARBERS[0]

        print(f"{BLUE}[Customer]{RESET} What's free with {barber.name} on {self.day}?")
        availability = await ops.get_availability(barber.id, self.day, 45)
        self.show_slots(availability)

        first = next(s for s in availability["slots"] if s["available"])
        print(f"\n{BLUE}[Customer]{RESET} Haircut + beard trim at {first['start_time']}, please.")
        booked = await ops.validate_and_book(
            barber.id, self.day, first["start_time"], ["haircut", "beard-trim"], "walk-in-001"
        )
        self.show_result(booked)

        print(f"\n{BLUE}[Customer 2]{RESET} Same time for a skin fade?")
        clash = await ops.validate_and_book(
            barber.id, self.day, first["start_time"], ["skin-fade"], "walk-in-002"
        )
        self.show_result(clash)

        booking_id = booked["booking"]["id"]
        print(f"\n{BLUE}[Customer]{RESET} Can I move to 16:00 instead?")
        self.show_result(await ops.reschedule_booking(booking_id, self.day, "16:00"))

        self.show_slots(await ops.get_availability(barber.id, self.day, 45))

        print(f"\n{BLUE}[Staff]{RESET} Confirm, then complete the appointment.")
        self.show_result(await ops.update_booking_status(booking_id, "confirmed"))
        self.show_result(await ops.update_booking_status(booking_id, "completed"))
        self.show_result(await ops.cancel_booking(booking_id, "changed mind"))

    async def _scenario_holiday(self) -> None:
        closed = Holiday(date=self.day, name="National Day")
        short_day = self.day + timedelta(days=1)
        special = Holiday(
            date=short_day,
            name="Eve of Eid",
            custom_hours=[Shift(start="10:00", end="12:00")],
        )
        ops = BookingOperations(build_demo_store(holidays=[closed, special]))
        barber = DEMO_BARBERS[1]

        for day in (self.day, short_day):
            status = await ops.get_shop_status(day)
            self.system_log(
                f"{status['date']}: open={status['is_open']} holiday={status['holiday']} "
                f"shifts={status['shifts']}"
            )
            self.show_slots(await ops.get_availability(barber.id, day, 30))

        print(f"\n{BLUE}[Customer]{RESET} Book {self.day} at 10:00?")
        self.show_result(
            await ops.validate_and_book(barber.id, self.day, "10:00", ["haircut"], "c-1")
        )

    async def _scenario_rush(self) -> None:
        ops = BookingOperations(build_demo_store())
        barber = DEMO_BARBERS[0]

        self.say("Five customers try to grab 10:00 at the same moment...")
        results = await asyncio.gather(*[
            ops.validate_and_book(barber.id, self.day, "10:00", ["haircut"], f"rush-{i}")
            for i in range(5)
        ])
        for i, result in enumerate(results):
            outcome = "booked" if result["success"] else result["rejection"]["reason"]
            self.system_log(f"rush-{i}: {outcome}")
        winners = sum(1 for r in results if r["success"])
        self.say(f"{winners} booking created; the rest were told the slot is taken.")

        occupied = await ops.get_occupied_slots(barber.id, self.day)
        self.system_log(f"Occupied: {[(s['start_time'], s['end_time']) for s in occupied['occupied_slots']]}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking engine demo")
    parser.add_argument(
        "--scenario",
        choices=list(ConsoleSession.SCENARIOS),
        default="booking",
        help="Which pre-scripted scenario to play",
    )
    args = parser.parse_args()
    ConsoleSession().run_scenario(args.scenario)


if __name__ == "__main__":
    main()
