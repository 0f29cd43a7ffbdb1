#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
from collections import Counter

import httpx


async def fire_pings(base_url: str, total: int, concurrency: int) -> Counter[str]:
    outcomes: Counter[str] = Counter()
    semaphore = asyncio.Semaphore(concurrency)
    url = f"{base_url.rstrip('/')}/ping"

    async with httpx.AsyncClient(timeout=10) as client:

        async def _one() -> None:
            async with semaphore:
                try:
                    response = await client.get(url)
                except httpx.HTTPError as exc:
                    outcomes[f"error:{type(exc).__name__}"] += 1
                    return
                outcomes[f"{response.status_code} {response.text}"] += 1

        await asyncio.gather(*(_one() for _ in range(total)))
    return outcomes


def main() -> int:
    parser = argparse.ArgumentParser(description="Send concurrent /ping requests to pingstats")
    parser.add_argument(
        "--base-url",
        default="http://localhost:3000",
        help="pingstats base URL (default: http://localhost:3000)",
    )
    parser.add_argument("--requests", type=int, default=1000)
    parser.add_argument("--concurrency", type=int, default=50)
    args = parser.parse_args()

    print(f"Sending {args.requests} pings to {args.base_url} ({args.concurrency} at a time)...")
    outcomes = asyncio.run(fire_pings(args.base_url, args.requests, args.concurrency))
    for outcome, count in outcomes.most_common():
        print(f"- {outcome}: {count}")

    return 0 if set(outcomes) == {"200 pong"} else 1


if __name__ == "__main__":
    raise SystemExit(main())
