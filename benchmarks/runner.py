#!/usr/bin/env python3
"""Benchmark Runner for the stream sink.

Feeds synthetic events through a StreamSink backed by an in-memory submitter
with a configurable rejection rate and outputs results in JSON format.

Usage:
    python -m benchmarks.runner [--events N] [--failure-rate R] [--output FILE]

Options:
    --events N          Events per run (default: 100000)
    --payload-bytes N   Payload size per event (default: 256)
    --failure-rate R    Probability a record is rejected per attempt (default: 0.05)
    --runs N            Number of runs (default: 3)
    --output FILE       Output JSON file (default: benchmark_output.json)
"""

from __future__ import annotations

import argparse
import json
import random
import sys
import time
from datetime import UTC, datetime
from pathlib import Path
from statistics import mean

from stream_sink import BackoffConfig, BufferConfig, InMemorySubmitter, SinkConfig, StreamSink


def _no_sleep(_: float) -> None:
    return None


def run_once(
    events: int,
    payload_bytes: int,
    failure_rate: float,
    buffer_config: BufferConfig,
    seed: int,
) -> dict:
    """Push ``events`` events through a fresh sink and flush whenever told to.

    Args:
        events: Number of events to store.
        payload_bytes: Size of each payload.
        failure_rate: Per-record rejection probability of the submitter.
        buffer_config: Sealing thresholds.
        seed: Seed for payload keys, rejections and jitter.

    Returns:
        Dictionary with timings and delivery counters for the run.
    """
    rng = random.Random(seed)
    submitter = InMemorySubmitter(failure_rate=failure_rate, rng=rng)
    config = SinkConfig(
        stream_name="benchmark",
        buffer=buffer_config,
        backoff=BackoffConfig(min_backoff_ms=0, max_backoff_ms=0),
    )
    sink = StreamSink(submitter, config, rng=rng, sleep=_no_sleep)
    payload = b"x" * payload_bytes

    start = time.perf_counter()
    flushes = 0
    for i in range(events):
        if sink.store_events([(payload, f"key-{rng.randrange(64)}-{i}")]):
            sink.flush()
            flushes += 1
    sink.close()
    elapsed = time.perf_counter() - start

    metrics = sink.sender_metrics()
    return {
        "elapsed_sec": elapsed,
        "events_per_sec": events / elapsed if elapsed > 0 else 0,
        "flushes": flushes,
        "batches": metrics.batches_sent,
        "attempts": metrics.attempts,
        "failed_records": metrics.failed_records,
        "delivered": len(submitter.accepted),
    }


def main() -> int:
    """Main entry point for benchmark runner.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    parser = argparse.ArgumentParser(description="Benchmark runner for the stream sink")
    parser.add_argument("--events", type=int, default=100_000, help="Events per run")
    parser.add_argument("--payload-bytes", type=int, default=256, help="Payload size")
    parser.add_argument(
        "--failure-rate",
        type=float,
        default=0.05,
        help="Per-record rejection probability (default: 0.05)",
    )
    parser.add_argument("--byte-limit", type=int, default=4_500_000)
    parser.add_argument("--record-limit", type=int, default=500)
    parser.add_argument("--time-limit-ms", type=int, default=5_000)
    parser.add_argument("--runs", type=int, default=3, help="Number of runs (default: 3)")
    parser.add_argument(
        "--output",
        type=str,
        default="benchmark_output.json",
        help="Output JSON file (default: benchmark_output.json)",
    )

    args = parser.parse_args()

    try:
        buffer_config = BufferConfig(
            byte_limit=args.byte_limit,
            record_limit=args.record_limit,
            time_limit_ms=args.time_limit_ms,
        )
        runs = []
        for i in range(args.runs):
            print(f"  Run {i + 1}/{args.runs}...", end=" ", flush=True)
            result = run_once(
                args.events, args.payload_bytes, args.failure_rate, buffer_config, seed=i
            )
            runs.append(result)
            print(f"{result['elapsed_sec']:.3f}s")

        summary = {
            "timestamp": datetime.now(UTC).isoformat(),
            "events_per_run": args.events,
            "failure_rate": args.failure_rate,
            "mean_events_per_sec": mean(r["events_per_sec"] for r in runs),
            "runs": runs,
        }

        output_path = Path(args.output)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)

        print(f"Mean throughput: {summary['mean_events_per_sec']:.1f} events/s")
        print(f"Results saved to: {output_path}")
        return 0

    except Exception as e:
        print(f"Error running benchmark: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
