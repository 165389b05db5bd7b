"""
Report whether the Chroma server is reachable, optionally starting or stopping it.

Usage:
    python -m scripts.engine_status [--start | --stop]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from docstore.config import setup_logging
from docstore.engine.manager import EngineProcessManager
from docstore.errors import EngineUnavailableError


async def run(start: bool, stop: bool) -> dict:
    manager = EngineProcessManager()
    try:
        if start:
            await manager.ensure_running()
        elif stop:
            # Only a container can be stopped from a fresh process.
            manager.adopt_container(manager.settings.chroma_container_name)
            await manager.stop()
        return await manager.status()
    finally:
        await manager.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Chroma server status.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--start", action="store_true", help="Start the engine if it is not running")
    group.add_argument("--stop", action="store_true", help="Stop the engine container")
    args = parser.parse_args()

    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        status = asyncio.run(run(args.start, args.stop))
    except EngineUnavailableError as exc:
        logger.error("Engine unavailable")
        for reason in exc.reasons:
            print(f"  - {reason}")
        sys.exit(1)

    print(f"url: {status['url']}")
    print(f"running: {status['running']}")
    print(f"state: {status['state']}")
    if status.get("reason"):
        print(f"reason: {status['reason']}")


if __name__ == "__main__":
    main()
