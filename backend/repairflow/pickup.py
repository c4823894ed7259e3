"""Pickup stage: assign a collector, collect, receive at the workshop.

Receiving is the transition into the service stage.
"""
import logging
from datetime import date, datetime

from flask import current_app
from sqlalchemy import func

from .accounting import ZERO, money
from .constants import PICKUP_STATUSES, rank
from .errors import PreconditionFailed, ValidationError
from .extensions import atomic, db
from .items import require_item
from .models import Enquiry, PickupDetails
from .notifications import notify_customer
from .photos import add_photo, item_photo_count
from .servicing import get_or_create_service_details
from .stages import advance_stage, load_enquiry

logger = logging.getLogger(__name__)


def _pickup_details(enquiry) -> PickupDetails:
    if enquiry.pickup_details is None:
        enquiry.pickup_details = PickupDetails(status='scheduled')
    return enquiry.pickup_details


def _advance_pickup(details: PickupDetails, status: str):
    if rank(PICKUP_STATUSES, status) < rank(PICKUP_STATUSES, details.status):
        raise PreconditionFailed(f"pickup is already {details.status}, cannot go back to {status}")
    details.status = status


def assign_pickup(enquiry_id: int, assigned_to: str, scheduled_time: datetime | None = None):
    if not assigned_to:
        raise ValidationError("assigned_to is required")
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'pickup', lock=True)
        details = _pickup_details(enquiry)
        _advance_pickup(details, 'assigned')
        details.assigned_to = assigned_to
        if scheduled_time is not None:
            details.scheduled_time = scheduled_time
    logger.info("Pickup for enquiry %s assigned to %s", enquiry_id, assigned_to)
    return enquiry


def mark_collected(enquiry_id: int, collection_photo: str, notes: str | None = None):
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'pickup', lock=True)
        details = enquiry.pickup_details
        if details is None or details.status != 'assigned':
            current = details.status if details else 'unassigned'
            raise PreconditionFailed(f"pickup must be assigned before collection (currently {current})")
        photo = add_photo(enquiry, 'pickup', 'after_photo', collection_photo, notes or 'Collection proof photo')
        _advance_pickup(details, 'collected')
        details.collection_photo_id = photo.id
        details.collection_notes = notes or ''
        details.collected_at = datetime.utcnow()
    logger.info("Pickup for enquiry %s collected", enquiry_id)
    return enquiry


def _received_items(enquiry, items, max_photos: int):
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("items must be a non-empty list")

    prepared = []
    seen = set()
    for entry in items:
        if not isinstance(entry, dict):
            raise ValidationError("each item must be an object")
        key = require_item(enquiry, entry.get('product'), entry.get('item_index'))
        if key in seen:
            raise ValidationError(f"item {key} is listed twice")
        seen.add(key)

        photos = entry.get('photos') or []
        if not isinstance(photos, (list, tuple)):
            raise ValidationError(f"photos for {key} must be a list")
        existing = item_photo_count(enquiry.id, key)
        if existing + len(photos) > max_photos:
            raise ValidationError(
                f"item {key} can hold at most {max_photos} photos ({existing} stored, {len(photos)} sent)"
            )
        prepared.append((key, list(photos), entry.get('notes'), existing))

    if not any(photos for _, photos, _, _ in prepared):
        raise ValidationError("upload at least one received-condition photo")
    return prepared


def receive_items(enquiry_id: int, items, estimated_cost=None, notes: str | None = None):
    """Record received-condition photos per item and open the service stage.

    ``items`` is a list of ``{"product", "item_index", "photos", "notes"}``.
    Photos take the next free slot indices of their item, so a second call
    appends instead of overwriting.
    """
    max_photos = current_app.config.get('MAX_ITEM_PHOTOS', 4)
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'pickup', lock=True)
        prepared = _received_items(enquiry, items, max_photos)

        if estimated_cost is not None:
            cost = money(estimated_cost, 'estimated_cost')
        elif enquiry.quoted_amount is not None:
            cost = enquiry.quoted_amount
        else:
            cost = ZERO

        photo_count = 0
        for key, photos, item_notes, existing in prepared:
            for slot, photo_data in enumerate(photos, start=existing + 1):
                add_photo(
                    enquiry, 'pickup', 'before_photo', photo_data,
                    notes=item_notes or 'Received condition photo', item=key, slot_index=slot,
                )
                photo_count += 1

        details = _pickup_details(enquiry)
        _advance_pickup(details, 'received')
        details.received_notes = notes or ''
        details.received_at = datetime.utcnow()

        service = get_or_create_service_details(enquiry)
        service.estimated_cost = cost
        service.received_notes = notes or ''

        if enquiry.pickup_date is None:
            enquiry.pickup_date = date.today()
        advance_stage(enquiry, 'service')

    logger.info(
        "Enquiry %s received: %d item(s), %d photo(s), estimated cost %s",
        enquiry_id, len(prepared), photo_count, cost,
    )
    notify_customer(enquiry, 'received', "we have received your items and work will begin shortly.")
    return enquiry


def pickup_stats() -> dict:
    """Pickup status counts for enquiries in the pickup stage.

    An enquiry without pickup details yet counts as scheduled.
    """
    status = func.coalesce(PickupDetails.status, 'scheduled')
    rows = (
        db.session.query(status, func.count(Enquiry.id))
        .select_from(Enquiry)
        .outerjoin(PickupDetails, PickupDetails.enquiry_id == Enquiry.id)
        .filter(Enquiry.current_stage == 'pickup')
        .group_by(status)
        .all()
    )
    counts = dict(rows)
    stats = {f"{name}_count": counts.get(name, 0) for name in PICKUP_STATUSES}
    stats['total_pickups'] = sum(stats.values())
    return stats
