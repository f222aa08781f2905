import argparse
import json
import logging
import signal
import sys
import threading

from core.app_context import AppContext
from core.config_loader import load_config
from pipeline.runner import run_matching_pipeline, load_records

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Set by the signal handler; users already being matched still finish
stop_event = threading.Event()


def signal_handler(sig, frame):
    logger.info("Shutdown signal received")
    stop_event.set()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Match early-career jobs to users")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config")
    parser.add_argument("--users", help="JSON array of user preference records")
    parser.add_argument("--jobs", help="JSON array of job records")
    parser.add_argument("--check", action="store_true", help="Only run the component health check")
    args = parser.parse_args(argv)
    if not args.check and not (args.users and args.jobs):
        parser.error("--users and --jobs are required unless --check is given")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    config = load_config(args.config)
    ctx = AppContext.build(config)

    try:
        if args.check:
            health = ctx.orchestrator.test_matching_components()
            logger.info(f"Component health: {json.dumps(health)}")
            return 0 if health['scoring'] and health['fallback'] else 1

        users = load_records(args.users)
        jobs = load_records(args.jobs)

        result = run_matching_pipeline(ctx, users, jobs, stop_event=stop_event)
        if result.summary is not None:
            logger.info(f"Session summary: {json.dumps(result.summary.as_dict())}")
        if not result.success:
            logger.error(f"Matching pipeline failed: {result.error}")
            return 1
        return 0
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())
