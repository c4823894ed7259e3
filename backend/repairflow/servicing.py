"""Service stage.

Each item instance carries at most one assignment per service type; every
assignment walks ``pending -> in-progress -> done`` with a photo on each step.
The stage closes once all assignments are done and the overall after-photo
has been captured.
"""
import logging
from datetime import datetime

from sqlalchemy import func

from .accounting import money
from .constants import SERVICE_TYPES
from .errors import NotFound, PreconditionFailed, ValidationError
from .extensions import atomic, db
from .items import require_item
from .models import Enquiry, ServiceDetails, ServiceTypeAssignment
from .photos import add_photo
from .stages import advance_stage, load_enquiry

logger = logging.getLogger(__name__)


def get_or_create_service_details(enquiry) -> ServiceDetails:
    if enquiry.service_details is None:
        enquiry.service_details = ServiceDetails()
        logger.debug("Created service details for enquiry %s", enquiry.id)
    return enquiry.service_details


def ensure_service_details(enquiry_id: int) -> ServiceDetails:
    """Create the enquiry's service details if missing; safe to repeat."""
    with atomic():
        enquiry = load_enquiry(enquiry_id)
        details = get_or_create_service_details(enquiry)
    return details


def _service_types(service_types) -> list[str]:
    if isinstance(service_types, str) or not service_types:
        raise ValidationError("service_types must be a non-empty list")
    wanted = []
    for service_type in service_types:
        if service_type not in SERVICE_TYPES:
            raise ValidationError(f"unknown service type {service_type!r}")
        if service_type not in wanted:
            wanted.append(service_type)
    return wanted


def assign_services(enquiry_id: int, service_types, product, item_index) -> list[ServiceTypeAssignment]:
    """Add the missing service types to one item instance.

    Types already on the item are skipped, so repeating a request leaves the
    assigned set unchanged. Returns only the newly created assignments.
    """
    wanted = _service_types(service_types)
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'service', lock=True)
        key = require_item(enquiry, product, item_index)
        get_or_create_service_details(enquiry)

        present = {
            row.service_type
            for row in ServiceTypeAssignment.query.filter_by(
                enquiry_id=enquiry.id, product=key.product, item_index=key.item_index
            )
        }
        created = []
        for service_type in wanted:
            if service_type in present:
                logger.debug("Enquiry %s item %s already has %s", enquiry.id, key, service_type)
                continue
            assignment = ServiceTypeAssignment(
                service_type=service_type, status='pending', product=key.product, item_index=key.item_index
            )
            enquiry.service_assignments.append(assignment)
            created.append(assignment)
        db.session.flush()

    logger.info(
        "Enquiry %s item %s: assigned %s",
        enquiry_id, key, ", ".join(a.service_type for a in created) or "nothing new",
    )
    return created


def _load_assignment(assignment_id: int) -> ServiceTypeAssignment:
    """Lock one assignment and its enquiry for the rest of the transaction.

    The assignment carries its own version column, so a step that lost a race
    against another writer fails at commit instead of applying twice.
    """
    assignment = db.session.get(ServiceTypeAssignment, assignment_id, with_for_update=True)
    if assignment is None:
        raise NotFound(f"service assignment {assignment_id} not found")
    load_enquiry(assignment.enquiry_id, 'service', lock=True)
    return assignment


def start_service(assignment_id: int, before_photo: str, notes: str | None = None) -> ServiceTypeAssignment:
    with atomic():
        assignment = _load_assignment(assignment_id)
        if assignment.status != 'pending':
            raise PreconditionFailed(f"{assignment.service_type} is already {assignment.status}")
        add_photo(assignment.enquiry, 'service', 'before_photo', before_photo, notes, assignment=assignment)
        assignment.status = 'in-progress'
        assignment.started_at = datetime.utcnow()
        if notes:
            assignment.work_notes = notes
    logger.info("Started %s on %s (assignment %s)", assignment.service_type, assignment.item_key, assignment_id)
    return assignment


def complete_service(assignment_id: int, after_photo: str, notes: str | None = None) -> ServiceTypeAssignment:
    with atomic():
        assignment = _load_assignment(assignment_id)
        if assignment.status != 'in-progress':
            raise PreconditionFailed(
                f"{assignment.service_type} must be in progress to complete (currently {assignment.status})"
            )
        add_photo(assignment.enquiry, 'service', 'after_photo', after_photo, notes, assignment=assignment)
        assignment.status = 'done'
        assignment.completed_at = datetime.utcnow()
        if notes:
            assignment.work_notes = notes
    logger.info("Completed %s on %s (assignment %s)", assignment.service_type, assignment.item_key, assignment_id)
    return assignment


def save_initial_photo(enquiry_id: int, before_photo: str, notes: str | None = None):
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'service')
        details = get_or_create_service_details(enquiry)
        photo = add_photo(enquiry, 'service', 'overall_before', before_photo, notes)
        details.overall_before_photo_id = photo.id
        details.overall_before_notes = notes
    return photo


def save_final_photo(enquiry_id: int, after_photo: str, notes: str | None = None):
    """Store the whole-job after-photo that unlocks workflow completion."""
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'service')
        details = get_or_create_service_details(enquiry)
        photo = add_photo(enquiry, 'service', 'overall_after', after_photo, notes)
        details.overall_after_photo_id = photo.id
        details.overall_after_notes = notes
    logger.info("Final photo %s saved for enquiry %s", photo.id, enquiry_id)
    return photo


def complete_service_workflow(enquiry_id: int, actual_cost, work_notes: str | None = None) -> Enquiry:
    cost = money(actual_cost, 'actual_cost')
    with atomic():
        enquiry = load_enquiry(enquiry_id, 'service', lock=True)
        assignments = enquiry.service_assignments
        if not assignments:
            raise PreconditionFailed("assign at least one service before completing")
        unfinished = [a for a in assignments if a.status != 'done']
        if unfinished:
            listing = ", ".join(f"{a.service_type} on {a.item_key} ({a.status})" for a in unfinished)
            raise PreconditionFailed(f"services not finished: {listing}")
        details = enquiry.service_details
        if details is None or details.overall_after_photo_id is None:
            raise PreconditionFailed("capture the final photo before completing the service")

        details.actual_cost = cost
        details.work_notes = work_notes
        details.completed_at = datetime.utcnow()
        advance_stage(enquiry, 'billing')

    logger.info("Service workflow for enquiry %s completed, actual cost %s", enquiry_id, cost)
    return enquiry


def service_stats() -> dict:
    rows = (
        db.session.query(ServiceTypeAssignment.status, func.count(ServiceTypeAssignment.id))
        .join(Enquiry, Enquiry.id == ServiceTypeAssignment.enquiry_id)
        .filter(Enquiry.current_stage == 'service')
        .group_by(ServiceTypeAssignment.status)
        .all()
    )
    counts = dict(rows)
    pending = counts.get('pending', 0)
    in_progress = counts.get('in-progress', 0)
    done = counts.get('done', 0)
    return {
        'pending_count': pending,
        'in_progress_count': in_progress,
        'done_count': done,
        'total_services': pending + in_progress + done,
    }
