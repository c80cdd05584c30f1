"""Monitoring configuration for the practice engine."""
from prometheus_client import Counter, start_http_server

# Session metrics
sessions_built = Counter(
    "lexikey_sessions_built_total",
    "Total number of practice sessions generated",
)

sessions_finished = Counter(
    "lexikey_sessions_finished_total",
    "Total number of practice sessions whose results were applied",
)

duplicate_submissions = Counter(
    "lexikey_duplicate_session_submissions_total",
    "Total number of repeated submissions of an already finished session",
)

insufficient_content = Counter(
    "lexikey_insufficient_content_total",
    "Total number of sessions built for a level above the catalog's maximum difficulty",
)

# Struggle ledger metrics
words_graduated = Counter(
    "lexikey_words_graduated_total",
    "Total number of words removed from struggle ledgers after graduation",
)

# Placement metrics
placement_tests_completed = Counter(
    "lexikey_placement_tests_completed_total",
    "Total number of placement tests completed",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
