"""Backfill appointment inclusion flags.

Usage::

    python -m salesops.scripts.recalculate_inclusion_flags [company_id]

Without a company id every tenant is recalculated.
"""

import asyncio
import logging
import sys
import time
from typing import Optional
from uuid import UUID

from salesops.core.config import settings
from salesops.core.database import build_engine, build_session_factory
from salesops.services.inclusion_reconciliation import InclusionReconciler


async def recalculate(company_id: Optional[UUID] = None) -> dict:
    engine = build_engine()
    session_maker = build_session_factory(engine)

    scope = f"company {company_id}" if company_id else "all companies"
    print(f"Recalculating inclusion flags for {scope}")

    started = time.monotonic()
    try:
        summary = await InclusionReconciler().recalculate_all_inclusion_flags(
            session_maker, company_id=company_id
        )
    finally:
        await engine.dispose()
    duration = time.monotonic() - started

    print("\nSummary:")
    print(f"  Total: {summary['total']}")
    print(f"  Updated: {summary['updated']}")
    print(f"  Errors: {summary['errors']}")
    print(f"  Duration: {duration:.1f}s")
    return summary


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=settings.LOG_LEVEL)

    try:
        company_id = UUID(argv[0]) if argv else None
    except ValueError:
        print(f"Invalid company id: {argv[0]!r}", file=sys.stderr)
        print(
            "Usage: python -m salesops.scripts.recalculate_inclusion_flags"
            " [company_id]",
            file=sys.stderr,
        )
        return 2

    summary = asyncio.run(recalculate(company_id))
    return 1 if summary["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
