"""Prometheus metrics for the dashboard engine and held-sale tracker."""
from prometheus_client import REGISTRY, Counter, Gauge, Histogram


def _get_or_create_metric(metric_class, name: str, doc: str, labelnames=None, **kwargs):
    """Get existing metric or create new one to avoid duplication errors in tests."""
    # Counters register without their "_total" suffix
    names = {name, name.removesuffix("_total")}
    for collector in list(REGISTRY._collector_to_names.keys()):
        if getattr(collector, "_name", None) in names:
            return collector
    try:
        if labelnames is not None:
            kwargs["labelnames"] = labelnames
        return metric_class(name, doc, registry=REGISTRY, **kwargs)
    except ValueError as e:
        if "Duplicated timeseries" in str(e):
            # Race condition - try to find it again
            for collector in list(REGISTRY._collector_to_names.keys()):
                if getattr(collector, "_name", None) in names:
                    return collector
        raise


# Engine metrics
dashboard_recomputations_total = _get_or_create_metric(
    Counter,
    "shop_dashboard_recomputations_total",
    "Total number of dashboard snapshot recomputations",
    ["mode"],
)

dashboard_recompute_duration_seconds = _get_or_create_metric(
    Histogram,
    "shop_dashboard_recompute_duration_seconds",
    "Time taken to derive a dashboard snapshot",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

records_loaded = _get_or_create_metric(
    Gauge,
    "shop_dashboard_records_loaded",
    "Number of records held in memory per collection",
    ["collection"],
)

malformed_records_total = _get_or_create_metric(
    Counter,
    "shop_dashboard_malformed_records_total",
    "Records skipped or partially excluded because they could not be parsed",
    ["kind"],
)

# Held-sale tracker metrics
held_sales_count = _get_or_create_metric(
    Gauge, "shop_dashboard_held_sales", "Current number of held (parked) sales"
)

held_sales_value = _get_or_create_metric(
    Gauge, "shop_dashboard_held_sales_value", "Total value of held (parked) sales"
)

banner_transitions_total = _get_or_create_metric(
    Counter,
    "shop_dashboard_banner_transitions_total",
    "Banner state transitions",
    ["banner", "transition"],
)

store_notifications_total = _get_or_create_metric(
    Counter,
    "shop_dashboard_store_notifications_total",
    "Change notifications delivered by the shared key-value store",
    ["key"],
)
