"""
Prometheus metrics middleware for API requests

Instruments all API requests with:
- Request count (by endpoint, method, status_code)
- Request duration (by endpoint, method)
"""

import re
import time

from fastapi import Request

from server.metrics import metrics

_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


async def metrics_middleware(request: Request, call_next):
    """Record Prometheus metrics for all API requests"""
    start_time = time.time()
    endpoint = _normalize_endpoint(request.url.path)
    method = request.method

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception:
        status_code = 500
        raise
    finally:
        metrics.api_requests.labels(endpoint=endpoint, method=method, status_code=status_code).inc()
        metrics.api_request_duration.labels(endpoint=endpoint, method=method).observe(
            time.time() - start_time
        )


def _normalize_endpoint(path: str) -> str:
    """Collapse entity IDs for metrics cardinality control

    Converts:
        /api/v1/elections/65a1...f3 -> /api/v1/elections/:id
        /api/v1/candidates/election/65a1...f3/0b2c...9e -> /api/v1/candidates/election/:id/:id
    """
    parts = [part for part in path.split('/') if part]
    normalized = [':id' if _ID_PATTERN.match(part) else part for part in parts]
    return '/' + '/'.join(normalized)
