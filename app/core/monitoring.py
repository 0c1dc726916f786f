# HostRefer monitoring
# Prometheus metrics for HTTP traffic and the referral lifecycle

import time
from fastapi import FastAPI, Request, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# HTTP metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])

# Referral lifecycle metrics
referrals_created = Counter('referrals_created_total', 'Referral links generated')
referral_clicks = Counter('referral_clicks_total', 'Referral link clicks tracked')
referral_views = Counter('referral_views_total', 'Referral link views tracked')
bookings_reported = Counter('bookings_reported_total', 'Bookings reported against referrals', ['reported_by'])
host_decisions = Counter('host_decisions_total', 'Host decisions on reported bookings', ['decision'])

# Reward metrics
rewards_issued = Counter('rewards_issued_total', 'Rewards written to the ledger', ['type'])
reward_issue_failures = Counter('reward_issue_failures_total', 'Reward issuance attempts that failed')

def _endpoint_label(request: Request) -> str:
    # Route template keeps label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)

def setup_monitoring_middleware(app: FastAPI):
    """Add monitoring middleware to track metrics"""

    @app.middleware("http")
    async def monitor_requests(request: Request, call_next):
        start_time = time.time()

        # Process request
        response = await call_next(request)

        # Calculate metrics
        process_time = time.time() - start_time
        endpoint = _endpoint_label(request)

        # Update metrics
        request_count.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()

        request_duration.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(process_time)

        return response

def metrics_response() -> Response:
    """Prometheus exposition of the default registry"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
