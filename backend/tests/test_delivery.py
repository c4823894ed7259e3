from datetime import date, datetime

import pytest

from factories import PHOTO, to_billing, to_delivery
from repairflow.delivery import complete_delivery, mark_out_for_delivery, schedule_delivery
from repairflow.errors import NotFound, PreconditionFailed, ValidationError
from repairflow.extensions import db
from repairflow.models import Photo

WHEN = datetime(2026, 10, 21, 16, 30)
ONE_BAG = [{"product": "Bag", "quantity": 1}]


def test_schedule_then_deliver_with_explicit_proof(app, notifications):
    enquiry = to_delivery(products=ONE_BAG)

    schedule_delivery(enquiry.id, "home-delivery", WHEN, "5 Lake View")
    details = enquiry.delivery_details
    assert details.status == "scheduled"
    assert details.delivery_method == "home-delivery"
    assert details.scheduled_time == WHEN
    assert details.delivery_address == "5 Lake View"

    mark_out_for_delivery(enquiry.id, "Vinod")
    assert enquiry.delivery_details.status == "out-for-delivery"
    assert enquiry.delivery_details.assigned_to == "Vinod"
    assert any("21 Oct 2026 16:30" in message for message in notifications.messages)

    done = complete_delivery(enquiry.id, PHOTO + "doorstep", "signed-by-ravi", "left with guard")

    details = done.delivery_details
    assert done.current_stage == "completed"
    assert done.delivery_date == date.today()
    assert details.status == "delivered"
    assert details.delivered_at is not None
    assert details.customer_signature == "signed-by-ravi"
    assert details.delivery_notes == "left with guard"
    proof = db.session.get(Photo, details.delivery_photo_id)
    assert (proof.stage, proof.photo_type, proof.photo_data) == ("delivery", "delivery_proof", PHOTO + "doorstep")
    assert details.to_dict()["has_signature"] is True


def test_final_service_photo_is_default_proof(app):
    enquiry = to_delivery(products=ONE_BAG)
    schedule_delivery(enquiry.id, "customer-pickup", WHEN)

    done = complete_delivery(enquiry.id)

    proof = db.session.get(Photo, done.delivery_details.delivery_photo_id)
    assert proof.photo_data == PHOTO + "final"
    assert proof.photo_type == "delivery_proof"
    assert done.delivery_details.delivery_address == "22 Park Street"


def test_cannot_complete_before_scheduling(app):
    enquiry = to_delivery(products=ONE_BAG)

    with pytest.raises(PreconditionFailed):
        complete_delivery(enquiry.id, PHOTO)
    assert enquiry.current_stage == "delivery"
    assert Photo.query.filter_by(stage="delivery").count() == 0


def test_out_for_delivery_straight_from_ready(app):
    enquiry = to_delivery(products=ONE_BAG)

    mark_out_for_delivery(enquiry.id, "Vinod")
    with pytest.raises(PreconditionFailed):
        schedule_delivery(enquiry.id, "home-delivery", WHEN)

    done = complete_delivery(enquiry.id, PHOTO)
    assert done.current_stage == "completed"


def test_delivered_job_is_closed(app):
    enquiry = to_delivery(products=ONE_BAG)
    schedule_delivery(enquiry.id, "customer-pickup", WHEN)
    complete_delivery(enquiry.id)

    with pytest.raises(NotFound):
        complete_delivery(enquiry.id, PHOTO)
    with pytest.raises(NotFound):
        mark_out_for_delivery(enquiry.id, "Vinod")


@pytest.mark.parametrize(
    "method,when",
    [("drone", WHEN), ("home-delivery", None)],
)
def test_schedule_validates_input(app, method, when):
    enquiry = to_delivery(products=ONE_BAG)
    with pytest.raises(ValidationError):
        schedule_delivery(enquiry.id, method, when)
    assert enquiry.delivery_details.status == "ready"


def test_delivery_operations_require_delivery_stage(app):
    enquiry = to_billing(products=ONE_BAG)
    with pytest.raises(NotFound):
        schedule_delivery(enquiry.id, "customer-pickup", WHEN)
    with pytest.raises(ValidationError):
        mark_out_for_delivery(enquiry.id, "")
