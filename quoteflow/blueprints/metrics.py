"""
Prometheus metrics for the quote backend.

HTTP timings are collected by app hooks; quote lifecycle counters are
incremented by the services. /metrics is unauthenticated and must stay on
the internal network.
"""
import os
import time

from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share samples through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None


def _scrape_registry():
    if not MULTIPROCESS_MODE:
        return REGISTRY
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return registry


# Quote lifecycle
quote_transitions_total = Counter(
    'quote_transitions_total',
    'Quote status transitions written',
    ['status']
)

quotes_expired_total = Counter(
    'quotes_expired_total',
    'Quotes moved to expired by the sweeper'
)

side_effect_failures_total = Counter(
    'quote_side_effect_failures_total',
    'Best-effort side effects that failed (email, scheduler, events, shares)',
    ['effect']
)

# HTTP
api_requests_total = Counter(
    'quoteflow_http_requests_total',
    'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status']
)

api_request_seconds = Histogram(
    'quoteflow_http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'endpoint'],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

api_requests_in_flight = Gauge(
    'quoteflow_http_requests_in_flight',
    'HTTP requests being processed',
    multiprocess_mode='livesum'
)


def setup_metrics_instrumentation(app):
    """Register the request timing hooks on the app."""

    @app.before_request
    def start_request_timer():
        g._metrics_started = time.time()
        api_requests_in_flight.inc()

    @app.after_request
    def record_request(response):
        started = g.pop('_metrics_started', None)
        if started is None:
            return response
        try:
            endpoint = request.endpoint or 'unknown'
            api_request_seconds.labels(method=request.method, endpoint=endpoint).observe(time.time() - started)
            api_requests_total.labels(
                method=request.method, endpoint=endpoint, http_status=response.status_code
            ).inc()
            api_requests_in_flight.dec()
        except Exception as e:
            app.logger.warning(f"Failed to record metrics: {e}")
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(_scrape_registry()), mimetype=CONTENT_TYPE_LATEST)
