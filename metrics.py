from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from flask import Response, request
import time
import functools


REQUEST_COUNT = Counter(
    'catalog_request_count',
    'Total Catalog Request Count',
    ['method', 'endpoint', 'http_status']
)

REQUEST_DURATION = Histogram(
    'catalog_request_duration_seconds',
    'Catalog Request Duration',
    ['method', 'endpoint']
)


MOVIE_COUNT = Gauge(
    'catalog_movies',
    'Number of movies in the catalog'
)

MOVIES_CREATED = Counter(
    'catalog_movies_created_total',
    'Total movies created'
)

MOVIES_DELETED = Counter(
    'catalog_movies_deleted_total',
    'Total movies deleted'
)


OPINIONS_ADDED = Counter(
    'catalog_opinions_added_total',
    'Total opinions added'
)

OPINION_LIMIT_REJECTIONS = Counter(
    'catalog_opinion_limit_rejections_total',
    'Opinions rejected because the movie already had the maximum'
)


def _status_of(response):
    if isinstance(response, tuple):
        if len(response) > 1 and isinstance(response[1], int):
            return response[1]
        response = response[0]
    return getattr(response, 'status_code', 200)


def track_request(f):
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        start_time = time.time()

        try:
            response = f(*args, **kwargs)
            status_code = _status_of(response)
        except Exception as e:
            status_code = getattr(e, 'status_code', None) or getattr(e, 'code', None) or 500
            raise
        finally:
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=f.__name__,
                http_status=status_code
            ).inc()

            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=f.__name__
            ).observe(time.time() - start_time)

        return response

    return wrapper


def metrics_endpoint():
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
