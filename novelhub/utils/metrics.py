"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
unlock_passes_total = Counter(
    "unlock_passes_total",
    "Total auto-unlock passes",
    ["outcome"],  # skipped, noop, unlocked
)

content_unlocked_total = Counter(
    "content_unlocked_total",
    "Total modules/chapters unlocked by the engine",
    ["kind"],  # module, chapter
)

rent_modules_switched_total = Counter(
    "rent_modules_switched_total",
    "Total rent modules auto-switched to published",
)

budget_credits_total = Counter(
    "budget_credits_total",
    "Total budget/balance credit operations",
    ["source"],  # contribution, gift, rental, admin
)

transaction_retries_total = Counter(
    "transaction_retries_total",
    "Total unit-of-work retries after serialization failures",
)

transactions_aborted_total = Counter(
    "transactions_aborted_total",
    "Total units of work rolled back on store errors",
)

# Histograms
unlock_pass_duration_seconds = Histogram(
    "unlock_pass_duration_seconds",
    "Auto-unlock pass duration",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1, 5],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
