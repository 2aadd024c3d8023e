from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "smart_tasks_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "smart_tasks_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

TASKS_CLASSIFIED_TOTAL = get_or_create_metric(
    "smart_tasks_classified_total",
    "Classifier results by category and priority",
    Counter,
    labelnames=["category", "priority"],
)

CLASSIFICATION_FALLBACKS_TOTAL = get_or_create_metric(
    "smart_tasks_classification_fallbacks_total",
    "Task creations that fell back to the default classification",
    Counter,
)

HISTORY_WRITE_FAILURES_TOTAL = get_or_create_metric(
    "smart_tasks_history_write_failures_total",
    "Task history entries that could not be saved",
    Counter,
)
