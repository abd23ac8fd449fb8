"""Prometheus metrics for rate freshness, autopay outcomes and storefront activity"""

from prometheus_client import Counter, Gauge, Histogram

# Market rate metrics
rate_update_counter = Counter(
    "ddm_rate_updates_total",
    "Market rate snapshots persisted",
    ["source"],
)

rate_provider_failure_counter = Counter(
    "ddm_rate_provider_failures_total",
    "Failed market rate provider calls",
    ["provider"],
)

market_rate_gauge = Gauge(
    "ddm_market_rate_per_gram",
    "Latest persisted rate per gram",
    ["purity"],  # 24k | 22k | 18k | silver
)

# Gullak metrics
autopay_counter = Counter(
    "ddm_autopay_total",
    "Gullak autopay outcomes",
    ["outcome"],  # paid | completed | failed
)

gullak_deposit_counter = Counter(
    "ddm_gullak_deposits_total",
    "Manual Gullak deposits",
)

# Storefront metrics
order_counter = Counter(
    "ddm_orders_total",
    "Orders placed",
)

cache_lookup_counter = Counter(
    "ddm_cache_lookups_total",
    "Read cache lookups",
    ["result"],  # hit | miss
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_autopay(outcome: str) -> None:
    autopay_counter.labels(outcome=outcome).inc()


def record_market_rate(rate_24k, rate_22k, rate_18k, silver) -> None:
    market_rate_gauge.labels(purity="24k").set(float(rate_24k))
    market_rate_gauge.labels(purity="22k").set(float(rate_22k))
    market_rate_gauge.labels(purity="18k").set(float(rate_18k))
    market_rate_gauge.labels(purity="silver").set(float(silver))
