#!/usr/bin/env python3
"""
Smoke test for a deployed FitCheck API (no auth).
Usage:
  API_BASE=https://fitcheck-api.fly.dev/api/v1 python scripts/smoke_api.py
  python scripts/smoke_api.py  # defaults to http://localhost:8000/api/v1
"""
import os
import sys

import httpx


def main():
    base = os.environ.get("API_BASE", "http://localhost:8000/api/v1").rstrip("/")
    root = base.replace("/api/v1", "").rstrip("/")
    failed = []

    def check(label: str, method: str, url: str, expected: int, **kwargs) -> None:
        print(f"  {label} ...", end=" ")
        try:
            status = httpx.request(method, url, timeout=10, **kwargs).status_code
        except httpx.HTTPError as e:
            print(f"ERROR: {e}")
            failed.append(label)
            return
        if status == expected:
            print("OK")
        else:
            print(f"FAIL ({status}, expected {expected})")
            failed.append(label)

    print(f"Smoke testing API at {base}")

    check("GET /health", "GET", f"{root}/health", 200)
    # Protected routes must refuse anonymous callers before doing any work
    check(
        "POST /analyze-job (anonymous)",
        "POST",
        f"{base}/analyze-job",
        401,
        json={"jobDescription": "Senior Backend Engineer, Python and PostgreSQL, remote."},
    )
    check("GET /usage (anonymous)", "GET", f"{base}/usage", 401)
    check("GET /profile (anonymous)", "GET", f"{base}/profile", 401)

    if failed:
        print(f"\nFailed: {', '.join(failed)}")
        sys.exit(1)
    print("\nAll checks passed.")


if __name__ == "__main__":
    main()
