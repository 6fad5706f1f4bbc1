#!/usr/bin/env python3
"""
Live smoke check: connect to a running server, open a room and print what comes back.
"""

import argparse
import asyncio
import json
import logging

import websockets

logger = logging.getLogger(__name__)

EXPECTED = ("hello", "createRoom")


async def probe(uri: str, timeout: float = 5.0) -> dict:
    """
    Create a room on the server at ``uri``.

    Returns:
        The first frame of each EXPECTED type, keyed by type
    """
    seen = {}
    async with websockets.connect(uri) as websocket:
        await websocket.send(json.dumps({"type": "createRoom"}))
        while len(seen) < len(EXPECTED):
            raw = await asyncio.wait_for(websocket.recv(), timeout)
            message = json.loads(raw)
            kind = message.get("type")
            if kind in EXPECTED and kind not in seen:
                seen[kind] = message
                logger.info(f"Received {kind}: {message}")
    return seen


def main():
    parser = argparse.ArgumentParser(description="Smoke-test an expedition game server")
    parser.add_argument("--uri", default="ws://localhost:8000/ws")
    parser.add_argument("--timeout", type=float, default=5.0)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    try:
        seen = asyncio.run(probe(args.uri, args.timeout))
    except Exception as e:
        logger.error(f"Probe failed: {e}")
        raise SystemExit(1)

    ack = seen["createRoom"]
    if not ack.get("ok"):
        logger.error(f"Room creation refused: {ack}")
        raise SystemExit(1)
    logger.info(f"Server healthy, opened room {ack['code']}")


if __name__ == "__main__":
    main()
