#!/usr/bin/env python3
"""
CLI for inspecting and redriving dead-lettered analytics events.

Jobs land in the dead-letter queue when their timestamp cannot be parsed
or when persisting them kept failing. ``list`` shows them with their
failure reason; ``redrive`` moves them back to the main queue.
"""

import argparse
import asyncio
import sys
from typing import Any

from sitepulse.queue.event_queue import EventQueue
from sitepulse.repositories.base import open_aws_clients


def format_dead_letter(body: dict[str, Any]) -> str:
    """Render one dead-lettered job as a single table row."""
    failure = body.get("failure", {})
    record = body.get("record") or {}
    job_id = body.get("job_id", "<undecodable>")
    site_id = record.get("site_id", "-")
    reason = failure.get("reason", "")
    if len(reason) > 47:
        reason = reason[:47] + "..."
    return (
        f"{job_id:<38} {site_id:<16} {str(failure.get('attempts', '-')):<9}"
        f" {failure.get('dead_lettered_at', '-'):<26} {reason}"
    )


async def cmd_list(queue: EventQueue, limit: int) -> None:
    """
    Print dead-lettered jobs without consuming them.

    Args:
        queue: EventQueue bound to the open SQS client
        limit: Maximum number of jobs to show (SQS returns at most 10)
    """
    bodies = await queue.list_dead_letters(max_jobs=limit)

    if not bodies:
        print("No dead-lettered events.")
        return

    print(
        f"\n{'Job ID':<38} {'Site':<16} {'Attempts':<9}"
        f" {'Dead-lettered at':<26} {'Reason'}"
    )
    print("-" * 130)
    for body in bodies:
        print(format_dead_letter(body))

    print(f"\nShown: {len(bodies)} dead-lettered events")


async def cmd_redrive(queue: EventQueue, limit: int) -> None:
    """
    Move dead-lettered jobs back to the main queue.

    Args:
        queue: EventQueue bound to the open SQS client
        limit: Maximum number of jobs to move in this run
    """
    moved = await queue.redrive_dead_letters(max_jobs=limit)
    print(f"✓ Redrove {moved} events to {queue.queue_name}")


async def run(command: str, limit: int) -> None:
    async with open_aws_clients() as clients:
        queue = EventQueue(clients.sqs)
        if command == "list":
            await cmd_list(queue, limit)
        elif command == "redrive":
            await cmd_redrive(queue, limit)


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Inspect and redrive dead-lettered analytics events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    list_parser = subparsers.add_parser("list", help="List dead-lettered events")
    list_parser.add_argument(
        "--limit", type=int, default=10, help="Maximum events to show (default: 10)"
    )

    redrive_parser = subparsers.add_parser(
        "redrive", help="Move dead-lettered events back to the main queue"
    )
    redrive_parser.add_argument(
        "--limit", type=int, default=10, help="Maximum events to move (default: 10)"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(run(args.command, args.limit))


if __name__ == "__main__":
    main()
