"""
main.py — command-line entry point for the award report.

Usage:
    python main.py --start 2024-01-01 --end 2024-01-31
    python main.py --start 2024-01-03 --end 2024-01-10 --output-dir out/
"""

import argparse
import logging
import sys
from datetime import datetime

# ── Logging setup ─────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  —  %(message)s",
    datefmt="%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("main")

# ── Project imports ───────────────────────────────────────────────────────────
import config
from jobs.pipeline import run_job
from jobs.progress import ProgressReporter


def _print_summary(reporter: ProgressReporter, run_start: datetime) -> None:
    """Print a readable per-file table to stdout."""
    s = reporter.state
    elapsed = (datetime.now() - run_start).seconds

    print()
    print("━" * 60)
    print(f"  AWARD REPORT  —  {datetime.now().strftime('%d %b %Y')}")
    print("━" * 60)
    for label, count in zip(s.labels, s.counts):
        print(f"  {label:<36}  {count:>6} record(s)")
    print("━" * 60)
    print(f"  Bidders  : {s.summary_row_count:>6}")
    print(f"  Rows     : {s.raw_row_count:>6}")
    print(f"  Elapsed  : {elapsed}s")
    print(f"  Status   : {'FAILED' if s.error else 'OK'}  {s.message}")
    print("━" * 60)
    print()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Government procurement award report generator"
    )
    parser.add_argument("--start", required=True, help="First day, YYYY-MM-DD")
    parser.add_argument("--end", required=True, help="Last day, YYYY-MM-DD")
    parser.add_argument(
        "--output-dir",
        default=None,
        help=f"Where to write the report (default: {config.OUTPUT_DIR})",
    )
    args = parser.parse_args(argv)

    run_start = datetime.now()
    reporter = ProgressReporter()
    run_job(args.start, args.end, reporter, output_dir=args.output_dir)
    _print_summary(reporter, run_start)

    return 1 if reporter.state.error else 0


if __name__ == "__main__":
    sys.exit(main())
