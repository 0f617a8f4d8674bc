#!/usr/bin/env python3
"""
Benchmark script for the reflective prompt engine.
Measures latency of the local /prompt and /titles endpoints.

Usage:
    python scripts/benchmark.py

Prerequisites:
    - Flask app must be running (python app.py)
    - Ollama is not needed; both endpoints are local-only
"""

import requests
import time
import statistics
from typing import List, Optional

BASE_URL = "http://127.0.0.1:5000"
USER_HEADERS = {"X-User-Id": "benchmark"}
SAMPLE_ENTRIES = [
    {"id": "1", "content": "Big deadline at work and my manager moved the meeting again. I feel overwhelmed.",
     "mood": "Bad", "createdAt": "2026-10-14T19:30:00"},
    {"id": "2", "content": "Slept badly. Need to plan tomorrow and set a boundary with the client.",
     "mood": "Okay", "createdAt": "2026-10-15T21:10:00"},
    {"id": "3", "content": "Walked after dinner, felt calmer. Grateful for a quiet evening.",
     "mood": "Good", "createdAt": "2026-10-16T20:05:00"},
]
SAMPLE_CONTENT = SAMPLE_ENTRIES[0]["content"]
WARMUP_ITERATIONS = 2
MEASURE_ITERATIONS = 50


def check_app() -> bool:
    """Check if Flask app is running."""
    try:
        response = requests.get(f"{BASE_URL}/ping", timeout=2)
        return response.status_code == 200 and response.json().get("status") == "ok"
    except requests.exceptions.RequestException:
        return False


def measure_latency(path: str, payload: dict) -> Optional[float]:
    """Measure single request latency."""
    start = time.time()
    try:
        response = requests.post(f"{BASE_URL}{path}", json=payload, headers=USER_HEADERS, timeout=10)
        elapsed = time.time() - start
        if response.status_code == 200:
            return elapsed
        print(f"  ⚠️  Request failed: {response.status_code}")
        return None
    except requests.exceptions.Timeout:
        print("  ⚠️  Request timed out")
        return None
    except requests.exceptions.RequestException as e:
        print(f"  ⚠️  Error: {e}")
        return None


def report(name: str, latencies: List[float]) -> None:
    if not latencies:
        print(f"❌ {name}: no successful requests.")
        return
    sorted_latencies = sorted(latencies)
    p95_index = int(len(sorted_latencies) * 0.95)
    p95_latency = sorted_latencies[min(p95_index, len(sorted_latencies) - 1)]
    print(f"📊 {name}:")
    print(f"  Mean latency:   {statistics.mean(latencies) * 1000:.1f}ms")
    print(f"  Median latency: {statistics.median(latencies) * 1000:.1f}ms")
    print(f"  P95 latency:    {p95_latency * 1000:.1f}ms")
    print(f"  Max latency:    {max(latencies) * 1000:.1f}ms\n")


def run(path: str, payload: dict) -> List[float]:
    for _ in range(WARMUP_ITERATIONS):
        measure_latency(path, payload)
    latencies: List[float] = []
    for i in range(MEASURE_ITERATIONS):
        print(f"  {path} {i+1}/{MEASURE_ITERATIONS}...", end="\r")
        latency = measure_latency(path, payload)
        if latency is not None:
            latencies.append(latency)
    print()
    return latencies


def main():
    print("🧠 Reflective Prompt Engine - Benchmark Tool\n")

    if not check_app():
        print("❌ Flask app is not running. Please start it with: python app.py")
        return
    print("✅ Flask app is running\n")

    report("/prompt", run("/prompt", {"entries": SAMPLE_ENTRIES}))
    report("/titles", run("/titles", {"content": SAMPLE_CONTENT}))
    print(f"  Entries per request: {len(SAMPLE_ENTRIES)}")


if __name__ == "__main__":
    main()
