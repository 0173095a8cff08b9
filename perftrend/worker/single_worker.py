"""
Benchmarking worker launcher for perftrend.
"""
import argparse
import logging
import signal
import sys

from perftrend.backend import GitVersionManager
from perftrend.config import settings, setup_logging
from perftrend.server.store import ResultStore
from perftrend.toolkit import Toolchain, default_catalog
from perftrend.worker.trend_worker import TrendWorker

logger = logging.getLogger("perftrend.worker")


def main(argv=None) -> int:
    """Main entry point for the benchmarking daemon."""
    parser = argparse.ArgumentParser(description="Continuously build and benchmark toolchain commits")
    parser.add_argument("--once", action="store_true", help="Run a single update/test/snapshot cycle and exit")
    parser.add_argument("--debug", action="store_true", help="Use short update and idle intervals")
    parser.add_argument("--quiet", action="store_true", help="Do not log to the console")
    args = parser.parse_args(argv)

    if args.debug:
        settings.debug = True
    if args.quiet:
        settings.quiet = True

    logger = setup_logging("worker")

    tests = default_catalog(settings.scratch_dir, Toolchain.from_settings(settings))
    logger.info(f"Test catalog has {len(tests)} tests")

    store = ResultStore(settings.db_path)
    version_manager = GitVersionManager.from_settings(settings)
    logger.info(f"Using {version_manager.name} version manager for {version_manager.tracked_refs}")
    worker = TrendWorker.from_settings(settings, version_manager, store, tests)

    def _signal_handler(signum, frame):
        logger.info(f"Worker received signal {signum}, stopping after the current commit")
        worker.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        if args.once:
            tested = worker.run_once()
            logger.info(f"Tested {tested} commits")
        else:
            worker.start()
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
