"""
Request tracing middleware
"""
import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from hotel_booking.core.logging_config import set_trace_id, generate_trace_id
from hotel_booking.core.metrics import record_http_request

logger = logging.getLogger(__name__)


def _endpoint_label(request: Request) -> str:
    # Route template keeps metric label cardinality bounded
    route = request.scope.get('route')
    return getattr(route, 'path', request.url.path)


class TracingMiddleware(BaseHTTPMiddleware):
    """Middleware to add trace ID to all requests and record HTTP metrics"""

    async def dispatch(self, request: Request, call_next):
        # Generate or extract trace ID
        trace_id = request.headers.get('X-Trace-ID') or generate_trace_id()
        set_trace_id(trace_id)

        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                'method': request.method,
                'path': request.url.path,
                'client_ip': request.client.host if request.client else None,
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            record_http_request(request.method, _endpoint_label(request), 500, duration_ms / 1000)
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    'method': request.method,
                    'path': request.url.path,
                    'duration_ms': round(duration_ms, 2),
                    'error': str(e),
                },
                exc_info=True
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        record_http_request(
            request.method, _endpoint_label(request), response.status_code, duration_ms / 1000
        )

        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                'method': request.method,
                'path': request.url.path,
                'status_code': response.status_code,
                'duration_ms': round(duration_ms, 2),
            }
        )

        response.headers['X-Trace-ID'] = trace_id
        return response
