from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from bili_calendar.infra.config import load_settings
from bili_calendar.infra.logging_config import configure_logging
from bili_calendar.infra.pipeline import CalendarService, UpstreamError

LOGGER = logging.getLogger("bili_calendar")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bili_calendar",
        description="Generate an ICS feed from a Bilibili anime follow list.",
    )
    parser.add_argument("uid", help="Bilibili user id (digits)")
    parser.add_argument(
        "--merge",
        action="append",
        default=[],
        metavar="URL",
        help="external ICS URL to merge and check for overlaps (repeatable, max 5)",
    )
    parser.add_argument("-o", "--output", type=Path, help="write to this file instead of stdout")
    return parser


async def _run(uid: str, sources: list[str], output: Path | None) -> int:
    service = CalendarService(load_settings())
    if sources:
        response = await service.merged_calendar(uid, sources)
    else:
        response = await service.single_calendar(uid)
    if output is None:
        sys.stdout.write(response.body)
    else:
        output.write_text(response.body, encoding="utf-8")
        LOGGER.info("Wrote %s (empty=%s)", output, response.empty)
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(_run(args.uid, args.merge, args.output))
    except ValueError as exc:
        LOGGER.error("Invalid input: %s", exc)
        return 2
    except UpstreamError as exc:
        LOGGER.error("Bilibili API error: %s (code: %s)", exc.message, exc.code)
        return 1


if __name__ == "__main__":
    sys.exit(main())
