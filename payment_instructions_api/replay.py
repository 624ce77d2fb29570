#!/usr/bin/env python3
"""
Replay sample payment instructions against a running server.

Requires:
- The server running (uvicorn payment_instructions_api.main:app)

Usage:
  # Replay the bundled samples
  python -m payment_instructions_api.replay --verbose

  # Analyze the request audit database
  python -m payment_instructions_api.replay --analyze

  # Analyze a specific database file
  python -m payment_instructions_api.replay --analyze --db-path /path/to/requests.db
"""

import argparse
import asyncio
import json
import sqlite3
import sys
from collections import Counter, defaultdict
from pathlib import Path

import httpx

DEFAULT_SAMPLES = Path(__file__).parent.parent / "samples" / "instructions.jsonl"


def load_samples(path: Path) -> list[dict]:
    """Load samples JSONL file."""
    data = []
    with open(path) as f:
        for line in f:
            if line.strip():
                data.append(json.loads(line))
    return data


async def replay_single(
    client: httpx.AsyncClient,
    base_url: str,
    idx: int,
    sample: dict,
    headers: dict,
    verbose: bool,
) -> dict:
    """Post a single sample and compare the returned status code."""
    expected = sample.get("expected_status_code")

    result = {
        "idx": idx,
        "expected": expected,
        "actual": None,
        "match": False,
        "error": None,
    }

    try:
        response = await client.post(
            f"{base_url}/payment-instructions",
            json={
                "accounts": sample.get("accounts", []),
                "instruction": sample.get("instruction", ""),
            },
            headers=headers,
        )
        # 400 carries a structured failure; anything else non-2xx is an error
        if response.status_code not in (200, 400):
            response.raise_for_status()
        api_result = response.json()
    except (httpx.HTTPError, json.JSONDecodeError) as e:
        result["error"] = str(e)
        if verbose:
            print(f"[{idx + 1}] ERROR: {e}")
        return result

    result["actual"] = api_result.get("status_code")
    result["match"] = expected is None or result["actual"] == expected

    if verbose:
        status = "✅" if result["match"] else f"❌ (expected {expected}, got {result['actual']})"
        print(f"[{idx + 1}] {status} - {sample.get('instruction', '')[:50]}")

    return result


async def replay(
    base_url: str,
    samples: list[dict],
    api_key: str | None = None,
    parallel: int = 5,
    verbose: bool = False,
) -> dict:
    """Replay samples using parallel requests."""

    results = {
        "total": len(samples),
        "matched": 0,
        "mismatched": 0,
        "errors": 0,
        "by_code": defaultdict(lambda: {"matched": 0, "total": 0}),
    }

    headers = {}
    if api_key:
        headers["X-API-Key"] = api_key

    semaphore = asyncio.Semaphore(parallel)

    async def bounded_replay(client, idx, sample):
        async with semaphore:
            return await replay_single(client, base_url, idx, sample, headers, verbose)

    async with httpx.AsyncClient(timeout=30.0) as client:
        tasks = [
            bounded_replay(client, idx, sample)
            for idx, sample in enumerate(samples)
        ]
        replay_results = await asyncio.gather(*tasks)

    for r in replay_results:
        if r["error"]:
            results["errors"] += 1
            continue
        code = r["expected"] or "(none)"
        results["by_code"][code]["total"] += 1
        if r["match"]:
            results["matched"] += 1
            results["by_code"][code]["matched"] += 1
        else:
            results["mismatched"] += 1

    return results


def analyze_db(db_path: Path, verbose: bool = False) -> dict:
    """Analyze the request audit database for outcomes and errors."""
    if not db_path.exists():
        print(f"Error: Database not found: {db_path}")
        sys.exit(1)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row

    results = {
        "total": 0,
        "success": 0,
        "failed": 0,
        "status_codes": Counter(),
        "internal_errors": 0,
    }

    cur = conn.execute(
        "SELECT COUNT(*) as total, "
        "SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END) as success_count "
        "FROM request_logs"
    )
    row = cur.fetchone()
    results["total"] = row["total"]
    results["success"] = row["success_count"] or 0
    results["failed"] = results["total"] - results["success"]

    cur = conn.execute(
        "SELECT status_code, COUNT(*) as cnt "
        "FROM request_logs GROUP BY status_code ORDER BY cnt DESC"
    )
    for row in cur.fetchall():
        results["status_codes"][row["status_code"] or "Unknown"] = row["cnt"]

    cur = conn.execute(
        "SELECT COUNT(*) as cnt FROM request_logs WHERE error_message IS NOT NULL"
    )
    results["internal_errors"] = cur.fetchone()["cnt"]

    if verbose and results["failed"] > 0:
        cur = conn.execute(
            "SELECT instruction, status_code, status_reason "
            "FROM request_logs WHERE success = 0 ORDER BY id DESC LIMIT 5"
        )
        results["sample_failures"] = [dict(row) for row in cur.fetchall()]

    conn.close()
    return results


def print_analysis_report(results: dict, verbose: bool = False):
    """Print database analysis report."""
    print("\n" + "=" * 70)
    print("AUDIT LOG ANALYSIS REPORT")
    print("=" * 70)

    total = results["total"]
    success = results["success"]

    print(f"\nTotal requests: {total}")
    print(f"Successful or pending: {success}")
    print(f"Failed: {results['failed']}")
    if total > 0:
        print(f"Success rate: {100 * success / total:.1f}%")
    if results["internal_errors"]:
        print(f"Internal errors: {results['internal_errors']}")

    if results["status_codes"]:
        print("\n" + "-" * 40)
        print("Status Codes:")
        for code, count in results["status_codes"].most_common():
            print(f"  {count:3d}x  {code}")

    if verbose and results.get("sample_failures"):
        print("\n" + "-" * 40)
        print("Recent Failures:")
        for i, fail in enumerate(results["sample_failures"], 1):
            print(f"\n--- Failure #{i} ---")
            instruction = fail["instruction"]
            print(f"Instruction: {instruction[:100]}{'...' if len(instruction) > 100 else ''}")
            print(f"Result: {fail['status_code']} {fail['status_reason']}")


def print_report(results: dict):
    """Print replay summary."""
    print("\n" + "=" * 60)
    print("REPLAY REPORT")
    print("=" * 60)

    total = results["total"]
    errors = results["errors"]
    replayed = total - errors

    print(f"\nTotal samples: {total}")
    if errors > 0:
        print(f"Errors: {errors}")

    if replayed > 0:
        pct = 100 * results["matched"] / replayed
        print(f"Status code matches: {results['matched']}/{replayed} ({pct:.1f}%)")

        print("\nBy expected status code:")
        for code, counts in sorted(results["by_code"].items()):
            print(f"  {code}: {counts['matched']}/{counts['total']}")


async def main_async(args):
    """Async main function."""
    samples_path = Path(args.samples) if args.samples else DEFAULT_SAMPLES

    if not samples_path.exists():
        print(f"Error: Samples file not found: {samples_path}")
        print("Use --samples to specify the path")
        sys.exit(1)

    print(f"Loading samples from: {samples_path}")
    samples = load_samples(samples_path)

    if args.max_samples:
        samples = samples[: args.max_samples]

    print(f"Replaying {len(samples)} samples against {args.api_url}")
    print(f"Parallel requests: {args.parallel}")
    print("=" * 60)

    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            health = await client.get(f"{args.api_url}/health")
            health.raise_for_status()
    except httpx.HTTPError:
        print(f"\nError: Cannot connect to {args.api_url}")
        print("Make sure the server is running:")
        print("  uvicorn payment_instructions_api.main:app --reload")
        sys.exit(1)

    results = await replay(
        args.api_url,
        samples,
        api_key=args.api_key,
        parallel=args.parallel,
        verbose=args.verbose,
    )

    print_report(results)


def main():
    parser = argparse.ArgumentParser(
        description="Replay payment instruction samples against the API"
    )

    # Mode selection
    parser.add_argument(
        "--analyze", "-a",
        action="store_true",
        help="Analyze the audit database instead of replaying samples",
    )
    parser.add_argument(
        "--db-path",
        default="requests.db",
        help="Path to database file (for --analyze mode)",
    )

    # Replay options
    parser.add_argument(
        "--api-url",
        default="http://localhost:8000",
        help="API base URL",
    )
    parser.add_argument(
        "--samples",
        default=None,
        help="Path to samples JSONL file",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="API key if endpoint is protected",
    )
    parser.add_argument(
        "--max-samples",
        type=int,
        default=None,
        help="Maximum number of samples to replay",
    )
    parser.add_argument(
        "--parallel", "-p",
        type=int,
        default=5,
        help="Number of parallel requests (default: 5)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print details for each sample/analysis",
    )

    args = parser.parse_args()

    if args.analyze:
        db_path = Path(args.db_path)
        print(f"Analyzing database: {db_path}")
        results = analyze_db(db_path, verbose=args.verbose)
        print_analysis_report(results, verbose=args.verbose)
    else:
        asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
