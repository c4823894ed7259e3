import logging

from .accounting import money
from .constants import INQUIRY_TYPES, PRODUCTS
from .errors import ValidationError
from .extensions import atomic, db
from .models import Enquiry, EnquiryProduct
from .stages import advance_stage, load_enquiry

logger = logging.getLogger(__name__)


def _product_lines(products):
    if not products:
        raise ValidationError("an enquiry needs at least one product")
    lines = []
    for entry in products:
        product = entry.get('product')
        if product not in PRODUCTS:
            raise ValidationError(f"unknown product {product!r}")
        try:
            quantity = int(entry.get('quantity', 1))
        except (TypeError, ValueError):
            raise ValidationError(f"quantity for {product} must be an integer")
        if quantity < 1:
            raise ValidationError(f"quantity for {product} must be at least 1")
        lines.append(EnquiryProduct(product=product, quantity=quantity))
    return lines


def create_enquiry(customer_name: str, phone: str, products, address: str = '', message: str = '',
                   inquiry_type: str = 'Walk-in', quoted_amount=None, notes=None) -> Enquiry:
    if not customer_name or not phone:
        raise ValidationError("customer name and phone are required")
    if inquiry_type not in INQUIRY_TYPES:
        raise ValidationError(f"unknown inquiry type {inquiry_type!r}")

    lines = _product_lines(products)
    with atomic():
        enquiry = Enquiry(
            customer_name=customer_name,
            phone=phone,
            address=address or '',
            message=message or '',
            inquiry_type=inquiry_type,
            product=lines[0].product,
            quantity=lines[0].quantity,
            quoted_amount=money(quoted_amount, 'quoted_amount') if quoted_amount is not None else None,
            notes=notes,
            products=lines,
        )
        db.session.add(enquiry)

    logger.info("Created enquiry %s for %s with %d product line(s)", enquiry.id, customer_name, len(lines))
    return enquiry


def convert_to_pickup(enquiry_id: int, quoted_amount=None) -> Enquiry:
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'enquiry', lock=True)
        if quoted_amount is not None:
            enquiry.quoted_amount = money(quoted_amount, 'quoted_amount')
        enquiry.status = 'converted'
        advance_stage(enquiry, 'pickup')
    return enquiry
