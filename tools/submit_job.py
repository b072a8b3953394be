#!/usr/bin/env python3
# ============================================================================
# CLI JOB SUBMISSION TOOL
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Tool - Submit relay jobs over HTTP
# PURPOSE: Start, watch and cancel relay jobs from a terminal
# CREATED: 19 OCT 2026
# ============================================================================
"""
Submit a relay job to a running orchestrator.

Usage:
    # Relay two sources in order
    python tools/submit_job.py https://cdn.example/a.mp4 https://cdn.example/b.mp4

    # Sources from a file (one URI per line), with a title, then watch
    python tools/submit_job.py --file playlist.txt --title "Evening stream" --poll

    # Cancel a job
    python tools/submit_job.py --cancel 3f2a...

Environment:
    ORCHESTRATOR_URL (default http://localhost:8000)
"""

import argparse
import json
import os
import sys
import time
from typing import List, Optional

import httpx

TERMINAL_STATES = ("completed", "cancelled", "abandoned")


def read_sources(args: argparse.Namespace) -> List[str]:
    sources = list(args.sources)
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            sources.extend(line.strip() for line in f if line.strip())
    return sources


def submit_job(
    client: httpx.Client,
    sources: List[str],
    title: Optional[str] = None,
    deadline_seconds: Optional[float] = None,
) -> dict:
    """POST the job and return the start response (raises on HTTP error)."""
    payload = {"sources": sources}
    if title:
        payload["title"] = title
    if deadline_seconds:
        payload["deadline_seconds"] = deadline_seconds

    resp = client.post("/api/v1/jobs", json=payload)
    if resp.status_code >= 400:
        print(f"ERROR: HTTP {resp.status_code}", file=sys.stderr)
        print(json.dumps(resp.json(), indent=2), file=sys.stderr)
        resp.raise_for_status()
    return resp.json()


def poll_status(client: httpx.Client, job_id: str, timeout: int, interval: float) -> Optional[dict]:
    """Poll job status until terminal or timeout."""
    print(f"\nPolling job {job_id[:12]}... (timeout {timeout}s)\n")
    start = time.time()
    last_line = None

    while time.time() - start < timeout:
        try:
            resp = client.get(f"/api/v1/jobs/{job_id}")
        except httpx.HTTPError as e:
            print(f"  Poll error: {e}")
            time.sleep(interval)
            continue

        if resp.status_code == 404:
            print("  Job no longer tracked (retention expired)")
            return None

        data = resp.json()
        line = (
            f"state={data['state']} source={data['current_source_index'] + 1}/{data['source_count']} "
            f"attempt={data['current_attempt']} profile={data.get('current_profile')}"
        )
        if line != last_line:
            elapsed = int(time.time() - start)
            print(f"  [{elapsed:4d}s] {line}")
            last_line = line

        if data["state"] in TERMINAL_STATES:
            print("\n--- FINAL STATUS ---")
            print(json.dumps(data, indent=2, default=str))
            return data

        time.sleep(interval)

    print(f"\nTimeout after {timeout}s")
    return None


def main():
    parser = argparse.ArgumentParser(
        description="Submit a relay job to the live relay orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s https://cdn.example/a.mp4 https://cdn.example/b.mp4 --poll
  %(prog)s --file playlist.txt --title "Evening stream"
  %(prog)s --cancel <job_id>
        """,
    )
    parser.add_argument("sources", nargs="*", help="Source URIs, relayed in order")
    parser.add_argument("--file", "-f", help="File with one source URI per line")
    parser.add_argument("--title", help="Broadcast title")
    parser.add_argument("--deadline", type=float, help="Overall job deadline in seconds")
    parser.add_argument("--cancel", metavar="JOB_ID", help="Cancel a job instead of submitting")
    parser.add_argument("--poll", "-p", action="store_true", help="Poll until the job is terminal")
    parser.add_argument(
        "--orchestrator-url", "-u",
        default=os.environ.get("ORCHESTRATOR_URL", "http://localhost:8000"),
        help="Orchestrator base URL",
    )
    parser.add_argument("--timeout", "-t", type=int, default=3600, help="Poll timeout in seconds")
    parser.add_argument("--interval", type=float, default=5.0, help="Poll interval in seconds")

    args = parser.parse_args()

    with httpx.Client(base_url=args.orchestrator_url, timeout=30.0) as client:
        if args.cancel:
            resp = client.delete(f"/api/v1/jobs/{args.cancel}")
            print(json.dumps(resp.json(), indent=2))
            sys.exit(0 if resp.status_code < 400 else 1)

        try:
            sources = read_sources(args)
        except OSError as e:
            print(f"ERROR: Cannot read {args.file}: {e}", file=sys.stderr)
            sys.exit(1)

        if not sources:
            parser.error("at least one source URI is required")

        print("Submitting job:")
        print(f"  sources: {len(sources)}")
        print(f"  title:   {args.title or '(default)'}")
        print()

        try:
            started = submit_job(client, sources, args.title, args.deadline)
        except httpx.HTTPError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            sys.exit(1)

        print("Submitted successfully!")
        print(f"  job_id:   {started['job_id']}")
        print(f"  accepted: {len(started['accepted'])}")
        for rejected in started.get("rejected", []):
            print(f"  rejected: {rejected['uri']} ({rejected['reason']})")

        if args.poll:
            result = poll_status(client, started["job_id"], args.timeout, args.interval)
            sys.exit(0 if result and result["state"] == "completed" else 1)


if __name__ == "__main__":
    main()
