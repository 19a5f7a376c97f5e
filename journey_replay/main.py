"""Command-line entry point for Journey Replay."""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from .config import get_settings
from .export.models import FilterSettingsImportError
from .session import ReplaySession
from .trace.loader import TraceLoadError
from .utils.logging import LogContext, configure_logging_from_settings

logger = structlog.get_logger()


async def export_trace(
    trace_path: str,
    output_dir: str,
    filters_path: str | None = None,
    apply_filters: bool = True,
) -> ReplaySession:
    """Load a trace and write its filtered trace and diagram next to each other."""
    settings = get_settings()
    session = ReplaySession(
        apply_filters_by_default=apply_filters and settings.apply_filters_by_default,
        max_trace_events=settings.max_trace_events,
    )

    with LogContext(trace_path=trace_path):
        await session.load_trace_file(trace_path)

        if filters_path:
            content = await asyncio.to_thread(Path(filters_path).read_text, encoding="utf-8")
            session.import_filter_settings(content)

        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for result in (session.export_filtered_trace(), session.export_diagram()):
            if not result.success:
                logger.warning("Export skipped", format=result.format, error=result.error)
                continue
            target = output_path / result.filename
            target.write_text(result.content, encoding="utf-8")
            logger.info("Export written", path=str(target))

    view = session.view
    print("\n" + "=" * 50)
    print("JOURNEY SUMMARY")
    print("=" * 50)
    print(f"Trace: {session.trace_name}")
    print(f"Events: {session.trace.event_count}")
    print(f"Visible events: {view.filtered_trace.event_count}")
    print(f"Interactions: {len(view.timeline.interaction_markers)}")
    print(f"Requests: {len(view.timeline.request_markers)}")
    for group_id, count in view.ignored_counts.items():
        print(f"  Filtered by {group_id}: {count}")
    print("=" * 50 + "\n")

    return session


def cli():
    """Command-line interface."""
    parser = argparse.ArgumentParser(
        description="Replay recorded browser journeys as timelines and sequence diagrams"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default: JOURNEY_API_HOST)")
    serve.add_argument("--port", type=int, help="Port (default: JOURNEY_API_PORT)")

    export = subparsers.add_parser("export", help="Write the filtered trace and diagram for a trace file")
    export.add_argument("trace", help="Path to the trace JSON file")
    export.add_argument(
        "--output", "-o",
        default=".",
        help="Output directory (default: current directory)"
    )
    export.add_argument(
        "--filters", "-f",
        help="Filter settings file previously exported from a session"
    )
    export.add_argument(
        "--no-filters",
        action="store_true",
        help="Start with filtering disabled"
    )

    args = parser.parse_args()
    settings = get_settings()
    configure_logging_from_settings(settings)

    if args.command == "serve":
        import uvicorn

        from .api.server import app

        uvicorn.run(app, host=args.host or settings.api_host, port=args.port or settings.api_port)
        return

    try:
        asyncio.run(export_trace(
            trace_path=args.trace,
            output_dir=args.output,
            filters_path=args.filters,
            apply_filters=not args.no_filters,
        ))
    except (TraceLoadError, FilterSettingsImportError, OSError) as e:
        logger.error("Export failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    cli()
