"""Generate a lifelog analytics report from a transcript export.

Prints a summary for the chosen window and writes metrics and chart data
to CSV/JSON files.

Usage:
    python lifelog_summary.py [transcripts.json] [--window 30d]
        [--output-dir lifelog_analytics] [--sentiment] [--verbose]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from analytics import (
    GROUP_BY_OPTIONS,
    TIME_WINDOWS,
    build_dashboard_payload,
    print_summary_report,
    save_analytics_files,
)
from lifelogs import load_transcripts
from providers import OpenAISentimentProvider
from sentiment import SentimentCache, generate_sentiment_trend_data

logger = logging.getLogger(__name__)


async def _sentiment_chart(transcripts: list[dict], window: str, group_by: str | None) -> dict:
    provider = OpenAISentimentProvider()
    return await generate_sentiment_trend_data(
        transcripts, window, provider.analyze, SentimentCache(), group_by=group_by
    )


def main(
    path: str = "transcripts.json",
    window: str = "30d",
    output_dir: str = "lifelog_analytics",
    group_by: str | None = None,
    sentiment: bool = False,
) -> None:
    """Run the full report for one export file.

    Args:
        path: Transcript export to read.
        window: A key of ``analytics.TIME_WINDOWS``.
        output_dir: Directory for the CSV/JSON output.
        group_by: Optional bucket granularity override.
        sentiment: Also compute the sentiment trend (calls the LLM provider).
    """
    try:
        transcripts = load_transcripts(path)
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {path}: {e}", file=sys.stderr)
        sys.exit(1)

    payload = build_dashboard_payload(transcripts, window, group_by)
    if sentiment:
        payload["charts"]["sentiment"] = asyncio.run(
            _sentiment_chart(transcripts, window, group_by)
        )

    save_analytics_files(payload, output_dir)
    print_summary_report(payload, output_dir)


def cli(argv: list[str] | None = None) -> None:
    """Parse command-line arguments, configure logging and run ``main``."""
    parser = argparse.ArgumentParser(description="Summarize a lifelog transcript export")
    parser.add_argument("json_file", nargs="?", default="transcripts.json",
                        help="Path to the transcript export (default: transcripts.json)")
    parser.add_argument("--window", "-w", choices=list(TIME_WINDOWS), default="30d",
                        help="Time window to report on (default: 30d)")
    parser.add_argument("--group-by", "-g", choices=list(GROUP_BY_OPTIONS),
                        help="Override the window's bucket granularity")
    parser.add_argument("--output-dir", "-o", default="lifelog_analytics",
                        help="Directory for CSV/JSON output (default: lifelog_analytics)")
    parser.add_argument("--sentiment", "-s", action="store_true",
                        help="Also compute the sentiment trend (requires OPENAI_API_KEY)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show per-transcript diagnostics")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )
    main(args.json_file, args.window, args.output_dir, args.group_by, args.sentiment)


if __name__ == "__main__":
    cli()
