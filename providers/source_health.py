"""
Source Health Registry — Track per-provider API health metrics.

Keeps calls, last_success, last_error, consecutive_failures and avg_latency
in process memory. Counters reset on restart.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

TRACKED_SOURCES = [
    "open_meteo",
    "open_weather",
    "weather_api",
]

_lock = threading.Lock()
_registry: Dict[str, Dict] = {}


def _entry(source: str) -> Dict:
    entry = _registry.get(source)
    if entry is None:
        entry = {
            "source": source,
            "total_calls": 0,
            "last_success": None,
            "last_error": None,
            "last_error_msg": None,
            "consecutive_failures": 0,
            "total_successes": 0,
            "total_failures": 0,
            "avg_latency_ms": 0.0,
            "last_latency_ms": 0.0,
        }
        _registry[source] = entry
    return entry


def record_call(source: str):
    """Count one outbound attempt for a source."""
    with _lock:
        _entry(source)["total_calls"] += 1


def record_success(source: str, latency_ms: float):
    """Record a successful fetch for a source."""
    logger.debug("source_health: %s SUCCESS latency=%.0fms", source, latency_ms)
    now = datetime.now(timezone.utc).isoformat()
    with _lock:
        entry = _entry(source)
        # Exponential moving average for latency
        old_avg = entry["avg_latency_ms"] or latency_ms
        entry["avg_latency_ms"] = round(old_avg * 0.8 + latency_ms * 0.2, 1)
        entry["last_latency_ms"] = round(latency_ms, 1)
        entry["last_success"] = now
        entry["consecutive_failures"] = 0
        entry["total_successes"] += 1


def record_failure(source: str, error_msg: str):
    """Record a failed fetch for a source."""
    logger.debug("source_health: %s FAILURE error=%s", source, error_msg[:100])
    now = datetime.now(timezone.utc).isoformat()
    with _lock:
        entry = _entry(source)
        entry["last_error"] = now
        entry["last_error_msg"] = error_msg[:500]
        entry["consecutive_failures"] += 1
        entry["total_failures"] += 1


def get_source_health(source: str) -> Optional[Dict]:
    """Get health metrics for a single source."""
    with _lock:
        entry = _registry.get(source)
        return dict(entry) if entry else None


def get_all_source_health() -> List[Dict]:
    """Get health metrics for all tracked sources."""
    with _lock:
        result = {name: dict(entry) for name, entry in _registry.items()}

    all_sources = []
    for src in TRACKED_SOURCES:
        if src in result:
            entry = result[src]
            entry["status"] = _compute_status(entry)
            all_sources.append(entry)
        else:
            all_sources.append({
                "source": src,
                "status": "unknown",
                "total_calls": 0,
                "last_success": None,
                "last_error": None,
                "consecutive_failures": 0,
                "total_successes": 0,
                "total_failures": 0,
                "avg_latency_ms": 0,
            })
    return all_sources


def reset():
    """Forget all recorded metrics."""
    with _lock:
        _registry.clear()


def _compute_status(entry: Dict) -> str:
    """Compute human-readable status from health metrics."""
    consec = entry.get("consecutive_failures", 0)
    if consec >= 5:
        return "degraded"
    if consec >= 2:
        return "warning"
    if entry.get("last_success"):
        return "healthy"
    return "unknown"
