"""Traffic statistics for chat requests."""

import time
from collections import deque
from typing import Any

from gatex.entities import ModelStats, RequestRecord

MAX_RECENT_REQUESTS = 1000
REPORTED_RECENT_REQUESTS = 50

# Latency thresholds for a model's status after a successful request
HEALTHY_LATENCY_MS = 5000
DEGRADED_LATENCY_MS = 15000


class TrafficStats:
    """Aggregates request outcomes per model and globally."""

    def __init__(self) -> None:
        self._started_at = time.time()
        self._models: dict[str, ModelStats] = {}
        self._recent: deque[RequestRecord] = deque(maxlen=MAX_RECENT_REQUESTS)
        self._total_requests = 0
        self._active_connections = 0
        self._total_input_tokens = 0
        self._total_output_tokens = 0
        self._cache_hits = 0

    def record_request(self, record: RequestRecord) -> None:
        """Record the outcome of one request."""
        self._recent.append(record)
        self._total_requests += 1
        self._total_input_tokens += record.input_tokens
        self._total_output_tokens += record.output_tokens

        stats = self._models.setdefault(record.model, ModelStats())
        stats.total_requests += 1
        stats.total_latency_ms += record.latency_ms
        stats.total_input_tokens += record.input_tokens
        stats.total_output_tokens += record.output_tokens
        stats.last_request = record.timestamp
        stats.last_latency_ms = record.latency_ms

        if record.success:
            stats.success_requests += 1
            if record.latency_ms < HEALTHY_LATENCY_MS:
                stats.status = "healthy"
            elif record.latency_ms < DEGRADED_LATENCY_MS:
                stats.status = "degraded"
        else:
            stats.failed_requests += 1
            stats.status = "error"
            stats.last_error = record.error

        if record.cached:
            self._cache_hits += 1
            stats.cache_hits += 1

    def connection_start(self) -> None:
        self._active_connections += 1

    def connection_end(self) -> None:
        self._active_connections = max(0, self._active_connections - 1)

    @property
    def active_connections(self) -> int:
        return self._active_connections

    @property
    def success_rate(self) -> float:
        """Percentage of successful requests, 100 before any request."""
        success = sum(s.success_requests for s in self._models.values())
        failed = sum(s.failed_requests for s in self._models.values())
        total = success + failed
        return (success / total) * 100 if total > 0 else 100.0

    @property
    def avg_latency_ms(self) -> float:
        latency = sum(s.total_latency_ms for s in self._models.values())
        count = sum(s.total_requests for s in self._models.values())
        return latency / count if count > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Snapshot for the ``/stats`` endpoint."""
        return {
            "uptime_seconds": time.time() - self._started_at,
            "total_requests": self._total_requests,
            "active_connections": self._active_connections,
            "total_input_tokens": self._total_input_tokens,
            "total_output_tokens": self._total_output_tokens,
            "cache_hits": self._cache_hits,
            "success_rate": self.success_rate,
            "avg_latency_ms": self.avg_latency_ms,
            "models": {
                model_id: {
                    "total_requests": s.total_requests,
                    "success_requests": s.success_requests,
                    "failed_requests": s.failed_requests,
                    "avg_latency_ms": s.avg_latency_ms,
                    "total_input_tokens": s.total_input_tokens,
                    "total_output_tokens": s.total_output_tokens,
                    "cache_hits": s.cache_hits,
                    "last_request": s.last_request,
                    "last_latency_ms": s.last_latency_ms,
                    "status": s.status,
                    "last_error": s.last_error,
                }
                for model_id, s in self._models.items()
            },
            "recent_requests": [
                {
                    "timestamp": r.timestamp,
                    "model": r.model,
                    "latency_ms": r.latency_ms,
                    "input_tokens": r.input_tokens,
                    "output_tokens": r.output_tokens,
                    "success": r.success,
                    "error": r.error,
                    "cached": r.cached,
                }
                for r in list(self._recent)[-REPORTED_RECENT_REQUESTS:]
            ],
        }
