# photo_modules/main.py
from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from . import config
from .face_crop import enrich_with_session_preview
from .mask_codec import decode_rle_binary_mask
from .metrics import (
    router as metrics_router,
    MASK_DECODE_REQUESTS,
    NORMALIZE_SECONDS,
    PAYLOADS_NORMALIZED,
    POLYGON_REPAIRS,
    SANITIZER_DROPS,
)
from .models import NormalizeResult
from .normalizer import normalize_photo_modules
from .sanitizer import SELF_INTERSECTION_NOTE
from photo_modules.logger import console

app = FastAPI(title=config.API_TITLE, version="1.0.0")

# Include /metrics endpoint
app.include_router(metrics_router)


class MaskDecodePayload(BaseModel):
    rle: Union[str, List[Optional[float]]]
    expected_length: int = Field(ge=0, le=config.MAX_MASK_LENGTH)
    starts_with: Literal[0, 1] = 0


class SessionNormalizePayload(BaseModel):
    payload: Any
    photo_refs: Optional[List[Any]] = None
    session_photos: Optional[Dict[str, Any]] = None


def record_result(result: NormalizeResult) -> None:
    """Update metrics and log the outcome of one normalization."""
    if result.model is None:
        PAYLOADS_NORMALIZED.labels(outcome="rejected").inc()
        console.log(f"[yellow]Photo modules payload rejected with {len(result.errors)} error(s)[/yellow]")
        return

    PAYLOADS_NORMALIZED.labels(outcome="ok").inc()
    for region in result.model.regions:
        if SELF_INTERSECTION_NOTE in (region.notes or ()):
            POLYGON_REPAIRS.inc()
    for drop in result.sanitizer_drops:
        SANITIZER_DROPS.labels(reason=drop.reason).inc()
        if config.LOG_SANITIZER_DROPS:
            console.log(f"[yellow]Dropped {drop.region_type} region {drop.region_id}: {drop.reason}[/yellow]")
    console.log(
        f"[green]Normalized payload: {len(result.model.regions)} region(s), "
        f"{len(result.sanitizer_drops)} dropped[/green]"
    )


def _normalize_and_respond(payload: Any) -> JSONResponse:
    with NORMALIZE_SECONDS.time():
        result = normalize_photo_modules(payload)
    record_result(result)
    return JSONResponse(status_code=200, content=result.to_dict())


@app.get("/")
def read_root() -> Dict[str, str]:
    return {"status": "ok", "message": "Photo Modules API"}


@app.post("/api/v1/photo-modules/normalize")
def normalize(payload: Any = Body(...)):
    """
    Normalize an upstream photo modules payload.

    Always answers 200: a rejected payload is reported through `errors`
    with `model` set to null, dropped regions through `sanitizer_drops`.
    """
    return _normalize_and_respond(payload)


@app.post("/api/v1/photo-modules/normalize/session")
def normalize_with_session(body: SessionNormalizePayload):
    """
    Normalize a payload, filling a missing face crop image from session photos.

    Body:
      {
        "payload": {...},                 # upstream photo modules payload
        "photo_refs": [{"photo_id": "p1", "slot_id": "daylight"}],
        "session_photos": {"daylight": {"preview": "https://..."}}
      }
    """
    console.log("[blue]Normalize request with session photos[/blue]")
    payload = enrich_with_session_preview(body.payload, body.photo_refs, body.session_photos)
    return _normalize_and_respond(payload)


@app.post("/api/v1/photo-modules/mask/decode")
def decode_mask(payload: MaskDecodePayload):
    """
    Decode a run-length mask.

    Body:
      {
        "rle": "3,2",            # or [3, 2]
        "expected_length": 5,
        "starts_with": 0         # optional
      }
    """
    MASK_DECODE_REQUESTS.inc()
    mask = decode_rle_binary_mask(payload.rle, payload.expected_length, payload.starts_with)
    console.log(f"[blue]Decoded mask of {mask.size} pixels[/blue]")
    return {
        "length": int(mask.size),
        "active_pixels": int(mask.sum()),
        "mask": mask.tolist(),
    }
