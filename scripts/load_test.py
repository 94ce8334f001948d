"""Async load generator racing wallet debits against one balance.

Credits a wallet once, then fires concurrent debits at it. With correct
per-wallet serialization the number of successful debits is exactly
`floor(initial / amount)` and the final balance is never negative.
"""

import argparse
import asyncio
import statistics
import time
from uuid import uuid4

import httpx


async def debit_once(client: httpx.AsyncClient, user_id: str, amount: int):
    """Send one debit and return (status_code, latency_ms)."""

    started = time.perf_counter()
    try:
        resp = await client.post(
            "/wallet/pay",
            json={"userId": user_id, "amount": amount},
            headers={"x-trace-id": str(uuid4())},
        )
        return resp.status_code, (time.perf_counter() - started) * 1000
    except httpx.HTTPError:
        return 599, (time.perf_counter() - started) * 1000


async def run(total: int, concurrency: int, base_url: str, initial: int, amount: int) -> None:
    """Execute a bounded-concurrency debit race and print summary stats."""

    user_id = f"load-{uuid4()}"
    sem = asyncio.Semaphore(concurrency)
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        resp = await client.post("/wallet/add", json={"userId": user_id, "amount": initial})
        resp.raise_for_status()

        async def worker():
            async with sem:
                return await debit_once(client, user_id, amount)

        results = await asyncio.gather(*(worker() for _ in range(total)))
        history = (await client.get(f"/wallet/{user_id}")).json()

    codes = [code for code, _ in results]
    lats = sorted(latency for _, latency in results)
    succeeded = sum(1 for code in codes if code == 200)
    rejected = sum(1 for code in codes if code == 400)

    def pct(p):
        if not lats:
            return 0.0
        return lats[min(len(lats) - 1, max(0, int((p / 100.0) * len(lats)) - 1))]

    print(f"user_id={user_id}")
    print(f"debits_succeeded={succeeded} expected={min(total, initial // amount)}")
    print(f"debits_rejected={rejected}")
    print(f"errors={total - succeeded - rejected}")
    print(f"final_balance={history['balance']} expected={initial - succeeded * amount}")
    print(f"p50_ms={pct(50):.2f}")
    print(f"p95_ms={pct(95):.2f}")
    print(f"avg_ms={statistics.mean(lats):.2f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--total", type=int, default=200)
    parser.add_argument("--concurrency", type=int, default=50)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--initial", type=int, default=10_000)
    parser.add_argument("--amount", type=int, default=80)
    args = parser.parse_args()
    asyncio.run(run(args.total, args.concurrency, args.base_url, args.initial, args.amount))
