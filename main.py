#!/usr/bin/env python3
# bikematch/main.py
"""
Command-Line Interface for the BikeMatch nearby-cyclist matching demo.

Runs one matching session from the terminal: lists nearby cyclists, runs the
negotiation while printing every status update, and optionally follows the
matched cyclist's live position for a few ticks.

Usage:
    python main.py                              # Match around the fallback pickup
    python main.py --lat 19.43 --lng -99.13     # Explicit pickup
    python main.py --activity "Ruta deportiva"  # Prefer an activity
    python main.py --fast --seed 7 --track 5    # Instant, reproducible, 5 updates

Exit Codes:
    0: Match confirmed
    1: No match (no cyclists in radius, or search failure)
    2: Unexpected error
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from typing import Any, Dict, Optional

from bikematch import config, roster, utils
from bikematch.matching import MatchingEngine
from bikematch.models import Coordinate, MatchResult, MatchStatus
from bikematch.session import MatchSession
from bikematch.tracking import collect_locations

STATUS_LABELS: Dict[MatchStatus, str] = {
    MatchStatus.SEARCHING: "SEARCHING",
    MatchStatus.FOUND: "FOUND",
    MatchStatus.ACCEPTED: "ACCEPTED",
    MatchStatus.ERROR: "ERROR",
}


def print_header() -> None:
    """Print the CLI header."""
    print("\n" + "=" * 60)
    print("  BIKEMATCH - Connect with nearby cyclists")
    print("=" * 60 + "\n")


def print_status(status: MatchStatus, payload: Dict[str, Any]) -> None:
    """Status callback: one line per negotiation step."""
    line = f"  [{STATUS_LABELS[status]:^9}] {payload.get('message', '')}"
    candidate = payload.get("candidate")
    if candidate is not None:
        line += f" - {candidate.name}"
    if payload.get("eta") is not None:
        line += f" (llega en {payload['eta']} min)"
    print(line)


def print_candidates_table(session: MatchSession) -> None:
    """Print the nearby cyclists as a table."""
    if not session.candidates:
        print("  No cyclists in range.\n")
        return

    print(f"| {'Cyclist':<18} | {'Activity':<16} | {'Rating':^6} | {'Distance':^9} | {'ETA':^6} |")
    print("|" + "-" * 20 + "|" + "-" * 18 + "|" + "-" * 8 + "|" + "-" * 11 + "|" + "-" * 8 + "|")
    for c in session.candidates:
        distance = utils.format_distance(utils.distance_km(session.pickup, c.location))
        print(
            f"| {c.name:<18} | {c.activity_label:<16} | {c.rating:^6.2f} "
            f"| {distance:^9} | {c.estimated_arrival_minutes:>3} m |"
        )
    print()


def print_match_summary(result: MatchResult) -> None:
    """Print the final outcome of the negotiation."""
    print("\n" + "=" * 60)
    if result.success:
        c = result.candidate
        print(f"  Matched with:   {c.name} ({c.vehicle_type})")
        print(f"  Activity:       {c.activity_label}")
        print(f"  Rating:         {c.rating:.2f}")
        print(f"  Distance:       {result.distance_km} km")
        print(f"  ETA:            {result.estimated_arrival_minutes} min")
        print(f"  Price:          ${result.estimated_price}")
        print(f"  Contact:        {c.contact_phone}")
    else:
        print(f"  No match: {result.error_message}")
    print("=" * 60 + "\n")


async def run_session(
    pickup: Coordinate,
    activity: Optional[str],
    max_distance: float,
    engine: MatchingEngine,
    track: int,
) -> MatchResult:
    """
    Run one full session: list, negotiate, optionally track.

    Returns:
        The negotiation result
    """
    session = MatchSession(requester_id="cli-user", pickup=pickup, engine=engine)
    try:
        print(f"Pickup: {pickup.latitude:.5f}, {pickup.longitude:.5f} (radius {max_distance} km)\n")

        await session.refresh_candidates(max_distance)
        print_candidates_table(session)

        result = await session.request(
            activity_type=activity,
            max_distance_km=max_distance,
            on_status_update=print_status,
        )
        print_match_summary(result)

        if result.success and track > 0:
            print(f"Following {result.candidate.name} for {track} updates...")
            positions = await collect_locations(
                result.candidate.candidate_id,
                pickup,
                track,
                rng=engine.rng,
                interval=config.LOCATION_UPDATE_INTERVAL_SECONDS * engine.time_scale,
                start=result.candidate.location,
            )
            for i, position in enumerate(positions, start=1):
                remaining = utils.distance_km(position, pickup) * 1000
                print(f"  #{i:<3} {position.latitude:.6f}, {position.longitude:.6f}  ({remaining:.0f} m away)")
            print()

        return result
    finally:
        session.close()


def run_session_safe(args: argparse.Namespace) -> Optional[MatchResult]:
    """
    Run the session with error handling.

    Returns:
        The match result, or None if the run failed unexpectedly
    """
    try:
        if args.lat is not None and args.lng is not None:
            pickup = Coordinate(args.lat, args.lng)
        else:
            pickup = utils.resolve_pickup_location(use_ip_geolocation=args.locate)

        rng = random.Random(args.seed) if args.seed is not None else random.Random()
        engine = MatchingEngine(rng=rng, time_scale=0.0 if args.fast else 1.0)

        return asyncio.run(run_session(pickup, args.activity, args.max_distance, engine, args.track))
    except Exception as e:
        print(f"ERROR: Session failed: {e}")
        import traceback
        traceback.print_exc()
        return None


def main() -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="BikeMatch nearby-cyclist matching CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                # Fallback pickup, real-time delays
  python main.py --fast --seed 42               # Instant and reproducible
  python main.py --activity "Paseo casual"      # Prefer casual rides
  python main.py --locate --track 3             # Locate by IP, follow 3 updates
        """
    )

    parser.add_argument("--lat", type=float, default=None, help="Pickup latitude")
    parser.add_argument("--lng", type=float, default=None, help="Pickup longitude")

    parser.add_argument(
        "--activity", "-a",
        type=str,
        default=None,
        help=f"Preferred activity. Options: {', '.join(roster.activity_labels())}"
    )

    parser.add_argument(
        "--max-distance", "-r",
        type=float,
        default=config.DEFAULT_MAX_DISTANCE_KM,
        help=f"Search radius in km (default: {config.DEFAULT_MAX_DISTANCE_KM})"
    )

    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")

    parser.add_argument(
        "--fast",
        action="store_true",
        help="Skip the simulated network and negotiation delays"
    )

    parser.add_argument(
        "--track", "-t",
        type=int,
        default=0,
        help="Follow the matched cyclist for N live-location updates"
    )

    parser.add_argument(
        "--locate",
        action="store_true",
        help="Locate the pickup by IP address (falls back to Mexico City)"
    )

    parser.add_argument(
        "--list-activities",
        action="store_true",
        help="List the activities offered and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show engine logs"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # List activities mode
    if args.list_activities:
        print("\nAvailable Activities:")
        print("-" * 30)
        for label in roster.activity_labels():
            print(f"  {label}")
        return 0

    print_header()

    result = run_session_safe(args)
    if result is None:
        return 2
    if not result.success:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
