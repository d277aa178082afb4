import re

from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

push_registry = CollectorRegistry()

api_call_count = Counter(
    "autorerun_num_api_calls",
    "Total number of GitHub and DevOps API calls",
    labelnames=["endpoint"],
    registry=push_registry,
)

decision_counter = Counter(
    "autorerun_decision",
    "Number of rerun decisions taken",
    labelnames=["result"],
    registry=push_registry,
)

candidate_count = Gauge(
    "autorerun_num_candidates",
    "Number of pull requests eligible for a rerun in the last decision",
    registry=push_registry,
)

error_counter = Counter(
    "autorerun_error_counter",
    "Total number of errors",
    labelnames=["context"],
    registry=push_registry,
)

_ENDPOINT_PATTERNS = [
    (re.compile(r"/pulls/\d+/reviews"), "pulls/reviews"),
    (re.compile(r"/pulls(/\d+)?(\?|$)"), "pulls"),
    (re.compile(r"/commits/[^/]+/check-runs"), "check-runs"),
    (re.compile(r"/app/installations/\d+/access_tokens"), "installation_token"),
    (re.compile(r"/distributedtask/pools/[^/]+/jobrequests"), "jobrequests"),
    (re.compile(r"/build/builds/"), "builds"),
]


def _normalize_api_endpoint(endpoint: str) -> str:
    for pattern, name in _ENDPOINT_PATTERNS:
        if pattern.search(endpoint):
            return name
    return "other"


def record_api_call(endpoint: str) -> None:
    api_call_count.labels(endpoint=_normalize_api_endpoint(endpoint)).inc()


def push_metrics(gateway: str) -> None:
    push_to_gateway(gateway, job="autorerun", registry=push_registry)
