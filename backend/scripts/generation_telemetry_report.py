#!/usr/bin/env python3
import argparse
import json
import re
import sys
from collections import Counter, defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

TELEMETRY_PATTERN = re.compile(r"generation_telemetry=(\{.*\})")


def _iter_lines(paths: List[str]) -> Iterable[str]:
    if not paths:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    for path in paths:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                yield line.rstrip("\n")


def parse_payload(line: str) -> Optional[Dict[str, Any]]:
    match = TELEMETRY_PATTERN.search(line)
    if not match:
        return None
    try:
        value = json.loads(match.group(1))
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _safe_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _percentile(values: List[float], fraction: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    index = min(len(ordered) - 1, int(round(fraction * (len(ordered) - 1))))
    return ordered[index]


def build_report(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    operation_counts: Counter = Counter()
    served_counts: Counter = Counter()
    error_counts: Counter = Counter()
    latencies: Dict[str, List[float]] = defaultdict(list)

    failures = 0
    fallbacks = 0
    for row in rows:
        operation = str(row.get("operation", "unknown"))
        operation_counts[operation] += 1
        latencies[operation].append(_safe_float(row.get("latency_ms")))

        served = row.get("served_backend")
        served_counts[str(served) if served else "none"] += 1
        if not row.get("success", False):
            failures += 1
            error_counts[str(row.get("error_type") or "unknown")] += 1
        attempted = row.get("attempted_backends") or []
        if row.get("requested_backend") == "primary" and "fallback" in attempted:
            fallbacks += 1

    total = len(rows)
    return {
        "total_calls": total,
        "operation_counts": dict(operation_counts.most_common()),
        "served_backend_counts": dict(served_counts),
        "error_type_counts": dict(error_counts.most_common()),
        "fallback_rate": round(fallbacks / total, 4) if total else 0.0,
        "failure_rate": round(failures / total, 4) if total else 0.0,
        "latency_ms": {
            operation: {
                "p50": round(_percentile(values, 0.5), 1),
                "p95": round(_percentile(values, 0.95), 1),
            }
            for operation, values in sorted(latencies.items())
        },
    }


def print_human(report: Dict[str, Any]) -> None:
    print(f"Total calls: {report['total_calls']}")
    print(f"Fallback rate: {report['fallback_rate']:.2%}")
    print(f"Failure rate: {report['failure_rate']:.2%}")
    print("Served by:")
    for backend, count in sorted(report["served_backend_counts"].items(), key=lambda x: x[1], reverse=True):
        print(f"  - {backend}: {count}")
    print("Operations (p50 / p95 ms):")
    for operation, count in report["operation_counts"].items():
        latency = report["latency_ms"].get(operation, {})
        print(f"  - {operation}: {count} ({latency.get('p50', 0.0)} / {latency.get('p95', 0.0)})")
    if report["error_type_counts"]:
        print("Errors:")
        for error, count in report["error_type_counts"].items():
            print(f"  - {error}: {count}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Summarize generation_telemetry logs from the model gateway.")
    parser.add_argument("log_files", nargs="*", help="Log files to parse. If omitted, read stdin.")
    parser.add_argument("--json-out", default="", help="Optional path to write JSON summary.")
    args = parser.parse_args(argv)

    rows = [payload for payload in (parse_payload(line) for line in _iter_lines(args.log_files)) if payload]
    report = build_report(rows)
    print_human(report)

    if args.json_out:
        path = Path(args.json_out)
        path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote report: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
