"""Fetch and print wallet reconciliation reports as JSON."""

import argparse
import json

import httpx


def main() -> None:
    """CLI entrypoint for wallet balance integrity checks."""

    parser = argparse.ArgumentParser(description="Compare wallet balances with their transaction logs.")
    parser.add_argument("user_ids", nargs="+", help="wallet owners to check")
    parser.add_argument("--api-url", default="http://localhost:8000")
    args = parser.parse_args()

    reports = []
    with httpx.Client(base_url=args.api_url, timeout=10.0) as client:
        for user_id in args.user_ids:
            resp = client.get(f"/wallet/{user_id}/reconciliation")
            resp.raise_for_status()
            reports.append(resp.json())
    print(json.dumps(reports, indent=2))
    if any(not report["balanced"] for report in reports):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
