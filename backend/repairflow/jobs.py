"""Read side: a job is an enquiry with everything hanging off it.

Every call recomputes from the current rows; nothing here is cached or
written.
"""
from sqlalchemy import func, or_

from .constants import STAGES
from .errors import ValidationError
from .extensions import db
from .items import item_instances
from .models import Enquiry, EnquiryProduct
from .photos import empty_buckets, group_photos, item_photos, overall_photos
from .stages import load_enquiry


def item_state(assignments) -> str:
    """Summary status of one item instance across its assignments."""
    if not assignments:
        return 'unassigned'
    statuses = {a.status for a in assignments}
    if statuses == {'done'}:
        return 'done'
    if statuses == {'pending'}:
        return 'pending'
    return 'in-progress'


def _assignment_dict(assignment) -> dict:
    data = assignment.to_dict()
    data['photos'] = group_photos(assignment.photos)
    return data


def get_job(enquiry_id: int) -> dict:
    enquiry = load_enquiry(enquiry_id)
    assignments = enquiry.service_assignments
    photos_by_item = item_photos(enquiry.id)

    by_item = {}
    for assignment in assignments:
        by_item.setdefault(assignment.item_key, []).append(assignment)

    items = []
    for key in item_instances(enquiry.products):
        services = by_item.get(key, [])
        items.append({
            'key': str(key),
            'product': key.product,
            'item_index': key.item_index,
            'state': item_state(services),
            'photos': photos_by_item.get(key, empty_buckets()),
            'services': [_assignment_dict(a) for a in services],
        })

    service = None
    if enquiry.service_details is not None:
        service = enquiry.service_details.to_dict()
        service['overall_photos'] = overall_photos(enquiry.id)

    job = enquiry.to_dict()
    job.update({
        'products': [line.to_dict() for line in enquiry.products],
        'items': items,
        'service_types': [_assignment_dict(a) for a in assignments],
        'pickup_details': enquiry.pickup_details.to_dict() if enquiry.pickup_details else None,
        'service_details': service,
        'billing_details': enquiry.billing_details.to_dict() if enquiry.billing_details else None,
        'delivery_details': enquiry.delivery_details.to_dict() if enquiry.delivery_details else None,
    })
    return job


def _summary(enquiry) -> dict:
    data = enquiry.to_dict()
    assignments = enquiry.service_assignments
    data['products'] = [line.to_dict() for line in enquiry.products]
    data['pickup_status'] = enquiry.pickup_details.status if enquiry.pickup_details else None
    data['delivery_status'] = enquiry.delivery_details.status if enquiry.delivery_details else None
    data['invoice_number'] = enquiry.billing_details.invoice_number if enquiry.billing_details else None
    data['services_total'] = len(assignments)
    data['services_done'] = sum(1 for a in assignments if a.status == 'done')
    return data


def _escape_like(text: str) -> str:
    return text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def list_jobs(stage: str | None = None, search: str | None = None) -> list[dict]:
    query = Enquiry.query
    if stage:
        if stage not in STAGES:
            raise ValidationError(f"unknown stage {stage!r}")
        query = query.filter(Enquiry.current_stage == stage)
    if search:
        pattern = f"%{_escape_like(search)}%"
        query = query.filter(or_(
            Enquiry.customer_name.ilike(pattern, escape='\\'),
            Enquiry.phone.ilike(pattern, escape='\\'),
            Enquiry.address.ilike(pattern, escape='\\'),
            Enquiry.product.ilike(pattern, escape='\\'),
            Enquiry.products.any(EnquiryProduct.product.ilike(pattern, escape='\\')),
        ))
    rows = query.order_by(Enquiry.created_at.desc(), Enquiry.id.desc()).all()
    return [_summary(enquiry) for enquiry in rows]


def stage_counts() -> dict:
    counts = dict(
        db.session.query(Enquiry.current_stage, func.count(Enquiry.id))
        .group_by(Enquiry.current_stage)
        .all()
    )
    return {stage: counts.get(stage, 0) for stage in STAGES}
