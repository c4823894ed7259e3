"""Pipeline stage guard.

An enquiry moves ``enquiry -> pickup -> service -> billing -> delivery ->
completed``, one step at a time, never backwards.
"""
import logging

from .constants import STAGES
from .errors import NotFound, PreconditionFailed
from .extensions import db
from .models import Enquiry

logger = logging.getLogger(__name__)


def next_stage(stage: str) -> str | None:
    position = STAGES.index(stage)
    if position + 1 < len(STAGES):
        return STAGES[position + 1]
    return None


def load_enquiry(enquiry_id: int, stage: str | None = None, lock: bool = False) -> Enquiry:
    """Fetch an enquiry, optionally requiring it to sit in ``stage``.

    ``lock`` takes a row lock for the rest of the transaction on backends that
    support ``SELECT ... FOR UPDATE``.
    """
    enquiry = db.session.get(Enquiry, enquiry_id, with_for_update=True if lock else None)
    if enquiry is None:
        raise NotFound(f"enquiry {enquiry_id} not found")
    if stage is not None and enquiry.current_stage != stage:
        raise NotFound(f"enquiry {enquiry_id} is not in {stage} stage (currently {enquiry.current_stage})")
    return enquiry


def advance_stage(enquiry: Enquiry, to_stage: str) -> Enquiry:
    expected = next_stage(enquiry.current_stage)
    if to_stage != expected:
        logger.warning(
            "Refused stage change %s -> %s for enquiry %s", enquiry.current_stage, to_stage, enquiry.id
        )
        raise PreconditionFailed(
            f"enquiry {enquiry.id} cannot move from {enquiry.current_stage} to {to_stage}"
        )
    logger.info("Enquiry %s: %s -> %s", enquiry.id, enquiry.current_stage, to_stage)
    enquiry.current_stage = to_stage
    return enquiry
