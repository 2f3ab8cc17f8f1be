# cli.py
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .design_loader import load_job
from .models import UserPlan
from .processor import render_campaign


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render campaign images (text, logo, CTA) from a YAML or JSON job file."
    )
    parser.add_argument(
        "--job",
        required=True,
        type=Path,
        help="Path to the render job YAML or JSON file.",
    )
    parser.add_argument(
        "--output",
        required=True,
        type=Path,
        help="Directory where rendered images and thumbnails will be written.",
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Run the layout analyzer on each image before rendering.",
    )
    parser.add_argument(
        "--ai",
        action="store_true",
        help="Use the Gemini vision model for layout analysis (implies --analyze).",
    )
    parser.add_argument(
        "--plan",
        choices=UserPlan.ALL,
        help="Override the user plan from the job file.",
    )
    parser.add_argument(
        "--log",
        required=False,
        type=Path,
        help="Optional path to a log file.",
    )

    # If no arguments were supplied, show the help screen instead of failing
    # with a cryptic missing argument error.
    if argv is None and len(sys.argv) == 1:
        parser.print_help(sys.stderr)
        sys.exit(1)

    return parser.parse_args(argv)


def configure_logging(log_path: Path | None) -> None:
    """
    Configure basic logging to stderr and optionally to a file.

    The format is kept simple so logs can be tailed while a batch renders
    while still being parseable by a log aggregation system.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s: %(message)s",
        handlers=handlers,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the CLI module.

    - Loads the render job.
    - Renders every image (optionally after layout analysis).
    - Returns a non-zero exit code if any image fell back to the error placeholder.
    """
    args = parse_args(argv)
    configure_logging(args.log)

    logging.info("Loading render job from %s", args.job)
    job = load_job(args.job)

    logging.info(
        "Loaded campaign '%s' (%s, plan=%s). Images: %s",
        job.campaign.id,
        job.project_size,
        job.user_plan,
        [img.id for img in job.campaign.images],
    )

    output_root: Path = args.output
    output_root.mkdir(parents=True, exist_ok=True)

    manifest = render_campaign(
        job,
        output_root,
        analyze=args.analyze or args.ai,
        use_ai=args.ai,
        user_plan=args.plan,
    )

    logging.info("Campaign rendering complete.")
    return 1 if manifest["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
