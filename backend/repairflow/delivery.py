"""Delivery stage: hand the finished items back and close the job."""
import logging
from datetime import date, datetime

from .constants import DELIVERY_METHODS, DELIVERY_STATUSES, rank
from .errors import PreconditionFailed, ValidationError
from .extensions import atomic
from .models import DeliveryDetails
from .notifications import notify_customer
from .photos import add_photo, latest_photo
from .stages import advance_stage, load_enquiry

logger = logging.getLogger(__name__)


def _advance_delivery(details: DeliveryDetails, status: str, allowed_from: tuple):
    if details.status not in allowed_from:
        raise PreconditionFailed(f"delivery is {details.status}, expected one of {', '.join(allowed_from)}")
    if rank(DELIVERY_STATUSES, status) < rank(DELIVERY_STATUSES, details.status):
        raise PreconditionFailed(f"delivery is already {details.status}")
    details.status = status


def move_to_delivery(enquiry_id: int):
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'billing', lock=True)
        if enquiry.billing_details is None:
            raise PreconditionFailed("create the invoice before moving to delivery")
        if enquiry.delivery_details is None:
            enquiry.delivery_details = DeliveryDetails(status='ready', delivery_address=enquiry.address)
        advance_stage(enquiry, 'delivery')
    return enquiry


def _delivery_details(enquiry_id: int, lock: bool = True):
    enquiry = load_enquiry(enquiry_id, 'delivery', lock=lock)
    if enquiry.delivery_details is None:
        enquiry.delivery_details = DeliveryDetails(status='ready', delivery_address=enquiry.address)
    return enquiry, enquiry.delivery_details


def schedule_delivery(enquiry_id: int, delivery_method: str, scheduled_time: datetime,
                      delivery_address: str | None = None):
    if delivery_method not in DELIVERY_METHODS:
        raise ValidationError(f"unknown delivery method {delivery_method!r}")
    if scheduled_time is None:
        raise ValidationError("scheduled_time is required")
    with atomic():
        enquiry, details = _delivery_details(enquiry_id)
        _advance_delivery(details, 'scheduled', ('ready', 'scheduled'))
        details.delivery_method = delivery_method
        details.scheduled_time = scheduled_time
        if delivery_address:
            details.delivery_address = delivery_address
    logger.info("Delivery for enquiry %s scheduled (%s) at %s", enquiry_id, delivery_method, scheduled_time)
    return enquiry


def mark_out_for_delivery(enquiry_id: int, assigned_to: str):
    if not assigned_to:
        raise ValidationError("assigned_to is required")
    with atomic():
        enquiry, details = _delivery_details(enquiry_id)
        _advance_delivery(details, 'out-for-delivery', ('ready', 'scheduled'))
        details.assigned_to = assigned_to
    expected = f" Expected delivery: {details.scheduled_time:%d %b %Y %H:%M}." if details.scheduled_time else ""
    notify_customer(enquiry, 'out-for-delivery', f"your {enquiry.product} is out for delivery.{expected}")
    return enquiry


def complete_delivery(enquiry_id: int, proof_photo: str | None = None, customer_signature: str | None = None,
                      notes: str | None = None):
    """Record the hand-over and close the job.

    Without an explicit proof photo the latest overall after-photo from the
    service stage is reused as proof.
    """
    with atomic():
        enquiry, details = _delivery_details(enquiry_id)
        _advance_delivery(details, 'delivered', ('scheduled', 'out-for-delivery'))
        if not proof_photo:
            final = latest_photo(enquiry.id, 'overall_after')
            if final is None:
                raise ValidationError("a delivery proof photo is required")
            proof_photo = final.photo_data
        photo = add_photo(enquiry, 'delivery', 'delivery_proof', proof_photo, notes or 'Delivery proof photo')
        details.delivery_photo_id = photo.id
        details.customer_signature = customer_signature or None
        details.delivery_notes = notes
        details.delivered_at = datetime.utcnow()
        enquiry.delivery_date = date.today()
        advance_stage(enquiry, 'completed')
    logger.info("Enquiry %s delivered and completed", enquiry_id)
    notify_customer(
        enquiry, 'delivered',
        f"your {enquiry.product} has been delivered. Thank you for choosing our service!",
    )
    return enquiry
