from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

resolutions_total = Counter(
    "namemapper_resolutions_total",
    "Principals resolved to a short name",
    ["source"],
)
resolution_failures_total = Counter(
    "namemapper_resolution_failures_total",
    "Principals that could not be resolved",
    ["reason"],
)
provider_failures_total = Counter(
    "namemapper_provider_failures_total",
    "Contained errors raised by name mapping providers",
    ["provider"],
)
providers_skipped_total = Counter(
    "namemapper_providers_skipped_total",
    "Chain entries skipped because their implementation could not be built",
)
provider_conflicts_total = Counter(
    "namemapper_provider_conflicts_total",
    "Principals claimed by more than one provider with different short names",
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
