#!/usr/bin/env python3
"""Single-host deployment tool — CLI entrypoint."""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from hostdeploy.deploy.params import collect_parameters
from hostdeploy.logging_setup import log_success, setup_cli_logging
from hostdeploy.pipeline import Pipeline, Stage
from hostdeploy.redact import clear_secrets
from hostdeploy.result import ExitCode
from hostdeploy.settings import load_settings

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="hostdeploy",
        description="Deploy a Dockerized git repository to a Linux server behind nginx",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Remove a previous deployment (container, image, nginx site, files) instead of deploying",
    )
    return parser


@contextlib.contextmanager
def _sigterm_interrupts():
    """Turn SIGTERM into KeyboardInterrupt while blocked on a prompt.

    A blocking read never yields to the event loop, so the loop's own
    SIGTERM handler cannot run until the read returns.
    """

    def interrupt(signum, frame):
        raise KeyboardInterrupt

    try:
        previous = signal.signal(signal.SIGTERM, interrupt)
    except ValueError:  # not the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _collect(settings, cleanup):
    with _sigterm_interrupts():
        return collect_parameters(settings, cleanup=cleanup)


async def _run(pipeline: Pipeline):
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        pass
    try:
        return await pipeline.run()
    finally:
        try:
            loop.remove_signal_handler(signal.SIGTERM)
        except (NotImplementedError, RuntimeError):
            pass


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(ExitCode.GENERAL)

    log_file = setup_cli_logging(settings.log_dir)
    logger.info("=========================================")
    logger.info("  Automated Deployment Started")
    logger.info("=========================================")
    logger.info(f"Log file: {log_file}")

    pipeline = Pipeline(settings, collect=lambda cleanup: _collect(settings, cleanup),
                        cleanup=args.cleanup)
    try:
        outcome = asyncio.run(_run(pipeline))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.error(f"Interrupted during: {pipeline.state.value}")
        logger.error(f"Check log file: {log_file}")
        sys.exit(ExitCode.GENERAL)
    finally:
        clear_secrets()

    if outcome.stage is Stage.FAILED:
        logger.error(f"Failed during: {outcome.failed_stage.value}")
        logger.error(f"Script failed with exit code {int(outcome.code)}")
        logger.error(f"Check log file: {log_file}")
        sys.exit(outcome.code)

    if args.cleanup:
        return

    params = pipeline.ctx.params
    log_success(logger, "=========================================")
    log_success(logger, "  Deployment Completed Successfully!")
    log_success(logger, "=========================================")
    if outcome.warnings:
        logger.warning(f"Completed with {len(outcome.warnings)} warning(s)")
    log_success(logger, f"Application URL: http://{params.server}")
    log_success(logger, f"Log file: {log_file}")


if __name__ == "__main__":
    main()
