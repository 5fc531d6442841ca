"""Command line entry point running the chat sync loop against a server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Sequence

from teamchat.sync import ChatApiError, SyncConfig, SyncLoop

logger = logging.getLogger("teamchat.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keep a team chat session in sync by polling")
    parser.add_argument(
        "--base-url",
        default=os.environ.get("TEAMCHAT_API_URL", "http://localhost:8000/api"),
        help="API root URL (default: $TEAMCHAT_API_URL or http://localhost:8000/api)",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("TEAMCHAT_TOKEN"),
        help="Bearer token (default: $TEAMCHAT_TOKEN)",
    )
    parser.add_argument("--room", type=int, default=None, help="Room id to open and follow")
    parser.add_argument("--message-interval", type=float, default=2.0)
    parser.add_argument("--heartbeat-interval", type=float, default=30.0)
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


async def run(config: SyncConfig, room_id: int | None = None) -> None:
    loop = SyncLoop(config)
    await loop.start()
    try:
        if room_id is not None:
            messages = await loop.open_room(room_id)
            logger.info("Following room %s (%d messages)", room_id, len(messages))
        await asyncio.Event().wait()
    finally:
        await loop.stop()
        await loop.api.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.token:
        parser.error("a bearer token is required (--token or $TEAMCHAT_TOKEN)")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    config = SyncConfig(
        base_url=args.base_url,
        token=args.token,
        message_interval=args.message_interval,
        heartbeat_interval=args.heartbeat_interval,
        timeout=args.timeout,
    )
    try:
        asyncio.run(run(config, args.room))
    except KeyboardInterrupt:
        logger.info("Stopped")
    except ChatApiError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
