"""API routes for parcel tracking."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from parceltrack.carriers.base import Carrier
from parceltrack.errors import InternalError, TrackError
from parceltrack.pagination import validate_page_args
from parceltrack.services.tracker import TrackerService

router = APIRouter(prefix="/api")

STATUS_CODES = {
    "BAD_REQUEST": 400,
    "NOT_FOUND": 404,
}


def get_tracker(request: Request) -> TrackerService:
    return request.app.state.tracker


def dump(model: BaseModel | None) -> dict[str, Any] | None:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True)


def carrier_summary(carrier: Carrier) -> dict[str, str]:
    return {
        "id": carrier.carrier_id,
        "name": carrier.name,
        "website": carrier.metadata.website,
    }


async def track_error_handler(request: Request, exc: TrackError) -> JSONResponse:
    """Map taxonomy errors onto HTTP status codes."""
    status_code = STATUS_CODES.get(exc.code, 500)
    if status_code == 500:
        # Internal failures never expose their detail.
        code, message = InternalError.code, InternalError.default_message
    else:
        code, message = exc.code, exc.message
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})


@router.get("/carriers")
async def list_carriers(
    first: int | None = None,
    after: str | None = None,
    last: int | None = None,
    before: str | None = None,
    tracker: TrackerService = Depends(get_tracker),
):
    """List enabled carriers."""
    connection = tracker.list_carriers(first=first, after=after, last=last, before=before)
    return connection.to_dict(carrier_summary)


@router.get("/detect-carrier")
async def detect_carrier(tracking_number: str, tracker: TrackerService = Depends(get_tracker)):
    """Carriers whose tracking number formats match."""
    matches = tracker.registry.detect(tracking_number)
    return {
        "trackingNumber": tracking_number,
        "carriers": [carrier_summary(c) for c in matches],
    }


@router.get("/carriers/{carrier_id}")
async def get_carrier(carrier_id: str, tracker: TrackerService = Depends(get_tracker)):
    return carrier_summary(tracker.get_carrier(carrier_id))


@router.get("/carriers/{carrier_id}/track/{tracking_number}")
async def track(
    carrier_id: str,
    tracking_number: str,
    first: int | None = None,
    after: str | None = None,
    last: int | None = None,
    before: str | None = None,
    tracker: TrackerService = Depends(get_tracker),
):
    """Track a parcel and page through its events."""
    if first is None and last is None:
        first = tracker.settings.max_page_size
    # Bad page arguments fail before the upstream is called.
    validate_page_args(first=first, after=after, last=last, before=before)

    track_info = await tracker.track(carrier_id, tracking_number)
    events = tracker.list_events(track_info, first=first, after=after, last=last, before=before)

    return {
        "trackingNumber": tracking_number.strip(),
        "lastEvent": dump(track_info.last_event()),
        "events": events.to_dict(dump),
        "sender": dump(track_info.sender),
        "recipient": dump(track_info.recipient),
        "carrierSpecificData": track_info.carrier_specific_data,
    }
