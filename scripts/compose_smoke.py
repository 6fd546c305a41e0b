#!/usr/bin/env python3
"""Smoke-check a running docrag API: health, readiness and document listing."""

from __future__ import annotations

import json
import os
import sys
import time
from urllib.error import URLError
from urllib.request import urlopen


def _get(url: str) -> dict:
    with urlopen(url, timeout=5) as response:
        return json.loads(response.read().decode("utf-8"))


def main() -> int:
    base_url = os.getenv("DOCRAG_API_URL", "http://localhost:8000").rstrip("/")
    try:
        print("/healthz:", _get(f"{base_url}/healthz"))
        # Give the service a moment to finish boot
        time.sleep(0.5)
        ready = _get(f"{base_url}/healthz/ready")
        print("/healthz/ready:", ready)
        if ready.get("status") != "ready":
            print("Knowledge store is not ready.", file=sys.stderr)
            return 1
        listing = _get(f"{base_url}/documents")
        print(f"/documents: {len(listing.get('documents', []))} document(s)")
    except (URLError, ValueError, OSError) as exc:
        print(f"Smoke check failed: {exc}", file=sys.stderr)
        return 1
    print("Smoke check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
