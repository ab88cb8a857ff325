"""
Name: Event Log Ops Script

Responsibilities:
  - tail: print the latest events of an aggregate (JSON lines)
  - check: verify an aggregate's sequence numbers are 1..N with no gaps or
    duplicates (exit code 1 when they are not)

Usage:
  python scripts/event_log.py tail order-42 --limit 20
  python scripts/event_log.py check order-42
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections import Counter
from typing import Iterable, List, Sequence

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from app.container import Container  # noqa: E402
from app.domain.events import Event  # noqa: E402

PAGE_SIZE = 500


def find_sequence_problems(numbers: Iterable[int]) -> tuple[List[int], List[int]]:
    """
    Return (gaps, duplicates) of a sequence expected to be exactly 1..N.

    gaps: numbers in 1..max missing from the input.
    duplicates: numbers seen more than once.
    """
    counts = Counter(numbers)
    if not counts:
        return [], []
    duplicates = sorted(n for n, c in counts.items() if c > 1)
    gaps = [n for n in range(1, max(counts) + 1) if n not in counts]
    return gaps, duplicates


def _event_to_dict(event: Event) -> dict:
    return {
        "id": str(event.id),
        "sequence_number": event.sequence_number,
        "event_type": event.event_type,
        "aggregate_type": event.aggregate_type,
        "created_at": event.created_at.isoformat() if event.created_at else None,
        "event_data": event.event_data,
    }


def _all_events(container: Container, aggregate_id: str) -> List[Event]:
    use_case = container.list_aggregate_events_use_case()
    events: List[Event] = []
    last = 0
    while True:
        page = use_case.execute(aggregate_id, from_sequence=last, limit=PAGE_SIZE)
        events.extend(page)
        if len(page) < PAGE_SIZE:
            return events
        last = page[-1].sequence_number


def cmd_tail(container: Container, args: argparse.Namespace) -> int:
    events = _all_events(container, args.aggregate_id)
    for event in events[-args.limit :]:
        print(json.dumps(_event_to_dict(event), default=str))
    return 0


def cmd_check(container: Container, args: argparse.Namespace) -> int:
    events = _all_events(container, args.aggregate_id)
    gaps, duplicates = find_sequence_problems(e.sequence_number for e in events)
    if not gaps and not duplicates:
        print(f"{args.aggregate_id}: OK ({len(events)} events)")
        return 0
    if gaps:
        print(f"{args.aggregate_id}: missing sequence numbers {gaps}")
    if duplicates:
        print(f"{args.aggregate_id}: duplicated sequence numbers {duplicates}")
    return 1


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    argv = list(argv)
    if argv and argv[0] == "--":
        argv = argv[1:]
    parser = argparse.ArgumentParser(description="Inspect the event log.")
    sub = parser.add_subparsers(dest="command", required=True)

    tail = sub.add_parser("tail", help="Print the latest events of an aggregate")
    tail.add_argument("aggregate_id")
    tail.add_argument("--limit", type=int, default=20)
    tail.set_defaults(handler=cmd_tail)

    check = sub.add_parser("check", help="Check an aggregate for sequence gaps")
    check.add_argument("aggregate_id")
    check.set_defaults(handler=cmd_check)

    args = parser.parse_args(argv)
    if args.command == "tail" and args.limit < 1:
        parser.error("--limit must be >= 1")
    return args


def main(argv: Sequence[str] | None = None, container: Container | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    owned = container is None
    container = container or Container()
    try:
        return args.handler(container, args)
    finally:
        if owned:
            container.close()


if __name__ == "__main__":
    raise SystemExit(main())
