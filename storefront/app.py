import logging
import time

from quart import Quart, jsonify, request

from .common.auth import init_auth
from .common.config import settings
from .common.database import init_db
from .common.errors import register_error_handlers
from .common.kafka_client import close_producer
from .common.redis_client import close_redis
from .identity.controller import bp as identity_bp
from .orders.controller import bp as orders_bp
from .products.controller import bp as products_bp
from .realtime.controller import bp as realtime_bp

# Prometheus metrics
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


log = logging.getLogger(__name__)

SERVICE_BLUEPRINTS = {
    "identity": [identity_bp],
    "products": [products_bp, realtime_bp],
    "orders": [orders_bp],
}

# Basic metrics with proper buckets for latency
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"])
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, float("inf"))
)


def create_app(services=None) -> Quart:
    services = tuple(services or settings.SERVICES)
    unknown = set(services) - set(SERVICE_BLUEPRINTS)
    if unknown:
        raise ValueError(f"Unknown service(s): {', '.join(sorted(unknown))}")

    app = Quart(__name__)
    app.config["SERVICES"] = services

    # Blueprints
    for name in services:
        for bp in SERVICE_BLUEPRINTS[name]:
            app.register_blueprint(bp)

    register_error_handlers(app)
    init_auth(app)

    @app.before_request
    async def before_request():
        request._start_time = time.time()
        log.info("[Instance %s] %s %s", settings.INSTANCE_ID, request.method, request.path)

    @app.after_request
    async def after_request(response):
        try:
            if hasattr(request, "_start_time"):
                duration = time.time() - request._start_time
                # Label by route rule rather than raw path to keep cardinality bounded
                endpoint = request.url_rule.rule if request.url_rule is not None else "unmatched"
                REQUEST_LATENCY.labels(endpoint=endpoint).observe(duration)
                REQUEST_COUNT.labels(
                    method=request.method,
                    endpoint=endpoint,
                    status=str(response.status_code)
                ).inc()
            response.headers["X-Instance-ID"] = settings.INSTANCE_ID
        except Exception as e:
            log.error("Error recording metrics: %s", e)
        return response

    @app.get("/metrics")
    async def metrics():
        data = generate_latest()
        return app.response_class(data, mimetype=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health():
        return jsonify({"status": "ok", "services": list(services)})

    @app.before_serving
    async def startup():
        logging.basicConfig(level=logging.INFO)
        log.info("Initializing database... services=%s", ",".join(services))
        await init_db()
        log.info("Database ready.")

    @app.after_serving
    async def shutdown():
        await close_producer()
        await close_redis()
        log.info("Shutdown complete.")

    return app
