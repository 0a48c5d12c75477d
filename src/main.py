import asyncio
import sys
from typing import Optional, Sequence

from src.app import AppSettings, configure_logging, prepare_database
from src.db import get_engine, get_session_factory
from src.db.schedules import ReviewScheduleRepository

__all__ = ["main"]


async def _print_due_overview(subject_ids: Optional[Sequence[str]]) -> None:
    async with get_session_factory()() as session:
        repository = ReviewScheduleRepository(session)
        stats = await repository.get_stats(subject_ids)
        summaries = await repository.get_due_summary_by_topic(subject_ids)
    await get_engine().dispose()

    print(f"Reviews due: {stats.total_due}")
    for room, count in stats.due_by_room.items():
        print(f"  {room}: {count}")
    print(f"Average streak: {stats.average_streak:.1f} (longest {stats.longest_streak})")
    if stats.next_review_date is not None:
        print(f"Next review: {stats.next_review_date.isoformat()}")
    for summary in summaries:
        label = summary.topic_name or summary.topic_id or "(no topic)"
        print(f"- {label}: {summary.due_count} due, {summary.urgent_count} urgent")


def main() -> None:
    """Entry point for the application."""
    settings = AppSettings.from_env()
    configure_logging(settings.log_level)
    prepare_database()
    asyncio.run(_print_due_overview(sys.argv[1:] or None))


if __name__ == "__main__":
    main()
