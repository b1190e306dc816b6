#!/usr/bin/env python3
"""
Trigger monthly statement generation, the way the scheduler does.

Usage:
  python scripts/generate_statements.py                    # current month, honours STATEMENT_DAY
  python scripts/generate_statements.py --year 2026 --month 9
  python scripts/generate_statements.py --bill-statuses    # refresh bill statuses instead
  # Requires TASK_SECRET in .env (or export); API_URL defaults to http://localhost:8000
"""
import argparse
import os
import sys

import httpx
from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_root, ".env"))

API_URL = os.getenv("API_URL", "http://localhost:8000").rstrip("/")
API_PREFIX = os.getenv("API_V1_PREFIX", "/api/v1")


def main():
    parser = argparse.ArgumentParser(description="Call a ShortStacks scheduled-task endpoint")
    parser.add_argument("--year", type=int)
    parser.add_argument("--month", type=int)
    parser.add_argument("--bill-statuses", action="store_true", help="refresh bill statuses instead")
    args = parser.parse_args()

    secret = os.getenv("TASK_SECRET")
    if not secret:
        print("ERROR: TASK_SECRET must be set. Add to .env or export.")
        sys.exit(1)

    if args.bill_statuses:
        path, params = "/tasks/update-bill-statuses", {}
    else:
        path = "/tasks/generate-statements"
        params = {k: v for k, v in (("year", args.year), ("month", args.month)) if v is not None}

    try:
        response = httpx.post(
            f"{API_URL}{API_PREFIX}{path}",
            params=params,
            headers={"Authorization": f"Bearer {secret}"},
            timeout=300.0,
        )
    except httpx.HTTPError as e:
        print(f"FAILED: request error: {e}")
        sys.exit(1)

    print(f"{response.status_code}: {response.text}")
    if response.status_code >= 400:
        sys.exit(1)


if __name__ == "__main__":
    main()
