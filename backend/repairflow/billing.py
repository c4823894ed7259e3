"""Billing stage: price the finished services and issue the invoice."""
import logging
from datetime import date

from flask import current_app

from .accounting import ZERO, calc_invoice
from .errors import ConflictError, PreconditionFailed, ValidationError
from .extensions import atomic, db
from .items import coerce_item_key
from .models import BillingDetails, BillingItem
from .notifications import notify_customer
from .stages import load_enquiry

logger = logging.getLogger(__name__)


def _default_gst_rate():
    return current_app.config.get('GST_RATE', 18)


def draft_billing_lines(enquiry_id: int) -> list[dict]:
    """One unpriced line per assigned service, ready to be filled in."""
    enquiry = load_enquiry(enquiry_id, 'billing')
    gst_rate = _default_gst_rate()
    return [
        {
            'service_type': assignment.service_type,
            'product': assignment.product,
            'item_index': assignment.item_index,
            'original_amount': ZERO,
            'discount_value': 0,
            'gst_rate': gst_rate,
            'description': f"{assignment.service_type} - {assignment.item_key}",
        }
        for assignment in enquiry.service_assignments
    ]


def _check_lines(enquiry, lines):
    if not isinstance(lines, (list, tuple)) or not lines:
        raise ValidationError("an invoice needs at least one line")

    assigned = {(a.service_type, a.item_key) for a in enquiry.service_assignments}
    seen = set()
    for line in lines:
        if not isinstance(line, dict):
            raise ValidationError("each billing line must be an object")
        key = (line.get('service_type'), coerce_item_key(line.get('product'), line.get('item_index')))
        if key not in assigned:
            raise ValidationError(f"{key[0]} on {key[1]} is not an assigned service of enquiry {enquiry.id}")
        if key in seen:
            raise ValidationError(f"{key[0]} on {key[1]} is billed twice")
        seen.add(key)


def create_billing(enquiry_id: int, lines, gst_included: bool | None = None, notes: str | None = None):
    """Price ``lines``, persist the invoice and stamp its number.

    Each line names ``service_type``, ``product``, ``item_index`` and
    ``original_amount``, with optional ``discount_value`` and ``gst_rate``
    percentages and a ``description``.
    """
    if gst_included is None:
        gst_included = current_app.config.get('GST_INCLUDED', True)
    gst_rate = _default_gst_rate()
    prefix = current_app.config.get('INVOICE_PREFIX', 'INV')

    with atomic():
        enquiry = load_enquiry(enquiry_id, 'billing', lock=True)
        if enquiry.billing_details is not None:
            raise ConflictError(
                f"enquiry {enquiry_id} is already billed ({enquiry.billing_details.invoice_number})"
            )
        _check_lines(enquiry, lines)
        priced = calc_invoice(lines, gst_included, gst_rate)

        today = date.today()
        billing = BillingDetails(
            final_amount=priced['final_amount'],
            gst_included=gst_included,
            gst_rate=gst_rate,
            gst_amount=priced['gst_amount'],
            subtotal=priced['subtotal'],
            total_amount=priced['total_amount'],
            invoice_date=today,
            customer_name=enquiry.customer_name,
            customer_phone=enquiry.phone,
            customer_address=enquiry.address or '',
            notes=notes,
            items=[
                BillingItem(
                    service_type=item['service_type'],
                    product=item.get('product'),
                    item_index=int(item['item_index']),
                    original_amount=item['original_amount'],
                    discount_value=item['discount_value'],
                    discount_amount=item['discount_amount'],
                    final_amount=item['final_amount'],
                    gst_rate=item['gst_rate'],
                    gst_amount=item['gst_amount'],
                    description=item.get('description'),
                )
                for item in priced['items']
            ],
        )
        enquiry.billing_details = billing
        db.session.flush()
        billing.invoice_number = f"{prefix}-{today:%Y%m%d}-{billing.id:05d}"
        enquiry.final_amount = billing.total_amount

    logger.info(
        "Invoice %s for enquiry %s: subtotal %s, GST %s, total %s",
        billing.invoice_number, enquiry_id, billing.subtotal, billing.gst_amount, billing.total_amount,
    )
    return billing


def send_invoice(enquiry_id: int) -> BillingDetails:
    enquiry = load_enquiry(enquiry_id)
    billing = enquiry.billing_details
    if billing is None:
        raise PreconditionFailed(f"enquiry {enquiry_id} has no invoice yet")
    notify_customer(
        enquiry, 'invoice',
        f"your invoice {billing.invoice_number} for {billing.total_amount} is ready.",
    )
    return billing
