# photo_modules/metrics.py
"""
Prometheus metrics and /metrics endpoint for the FastAPI app.
"""

from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

# Count normalized payloads by outcome: ok, rejected
PAYLOADS_NORMALIZED = Counter(
    "photo_modules_payloads_total",
    "Total number of photo modules payloads normalized",
    ["outcome"],
)

# Count regions dropped by the sanitizer, by drop reason
SANITIZER_DROPS = Counter(
    "photo_modules_sanitizer_drops_total",
    "Total number of regions dropped during sanitization",
    ["reason"],
)

# Returned regions carrying the bounding-box substitution note
POLYGON_REPAIRS = Counter(
    "photo_modules_polygon_repairs_total",
    "Total number of self-intersecting polygons replaced by their bounding box",
)

# Measure normalization time per payload
NORMALIZE_SECONDS = Histogram(
    "photo_modules_normalize_seconds",
    "Time spent normalizing photo modules payloads in seconds",
)

# Count standalone mask decode requests
MASK_DECODE_REQUESTS = Counter(
    "photo_modules_mask_decode_requests_total",
    "Total number of /api/v1/photo-modules/mask/decode requests",
)


@router.get("/metrics")
def metrics() -> Response:
    """
    Expose Prometheus metrics in text format.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
