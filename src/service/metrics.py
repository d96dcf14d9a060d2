from __future__ import annotations

from collections import defaultdict
from typing import Any


class Metrics:
    """In-process counters and latency samples, rendered as JSON or Prometheus text."""

    def __init__(self, prefix: str = "autovalue") -> None:
        self.prefix = prefix
        self.counters: dict[str, int] = defaultdict(int)
        self.latencies: dict[str, list[float]] = defaultdict(list)

    def incr(self, name: str, amount: int = 1) -> None:
        self.counters[name] += amount

    def observe(self, name: str, seconds: float) -> None:
        self.latencies[name].append(seconds)
        self.counters[f"{name}_count"] += 1

    def snapshot(self) -> dict[str, Any]:
        latency: dict[str, Any] = {}
        for name, vals in self.latencies.items():
            ordered = sorted(vals)
            n = len(ordered)
            latency[name] = {
                "count": n,
                "p50_ms": round(ordered[n // 2] * 1000, 1) if n else 0,
                "p95_ms": round(ordered[min(int(n * 0.95), n - 1)] * 1000, 1) if n else 0,
            }
        return {"counters": dict(self.counters), "latency": latency}

    def prometheus(self) -> str:
        lines: list[str] = []
        for k, v in sorted(self.counters.items()):
            safe = k.replace(".", "_").replace("-", "_")
            lines.append(f"# TYPE {self.prefix}_{safe} counter")
            lines.append(f"{self.prefix}_{safe} {v}")

        for name, vals in sorted(self.latencies.items()):
            if not vals:
                continue
            safe = name.replace(".", "_").replace("-", "_")
            ordered = sorted(vals)
            n = len(ordered)
            lines.append(f"# TYPE {self.prefix}_{safe}_seconds summary")
            for q in (0.5, 0.9, 0.99):
                idx = min(int(n * q), n - 1)
                lines.append(f'{self.prefix}_{safe}_seconds{{quantile="{q}"}} {ordered[idx]:.6f}')
            lines.append(f"{self.prefix}_{safe}_seconds_count {n}")
            lines.append(f"{self.prefix}_{safe}_seconds_sum {sum(ordered):.6f}")

        return "\n".join(lines) + "\n"
