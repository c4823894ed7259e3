from decimal import Decimal

import pytest

from factories import PHOTO, make_enquiry, received_payload, to_pickup, to_service
from repairflow.errors import NotFound, PreconditionFailed, ValidationError
from repairflow.extensions import db
from repairflow.models import Photo, ServiceDetails
from repairflow.pickup import assign_pickup, mark_collected, pickup_stats, receive_items


def test_receive_items_opens_service_stage(app):
    enquiry = to_pickup(quoted_amount=1500)

    received = receive_items(enquiry.id, received_payload(enquiry, photos_per_item=2))

    assert received.current_stage == "service"
    assert received.pickup_details.status == "received"
    assert received.service_details.estimated_cost == Decimal("1500.00")
    assert received.pickup_date is not None

    photos = (
        Photo.query.filter_by(enquiry_id=enquiry.id, stage="pickup", photo_type="before_photo")
        .order_by(Photo.id)
        .all()
    )
    assert len(photos) == 6
    by_item = {}
    for photo in photos:
        by_item.setdefault((photo.product, photo.item_index), []).append(photo.slot_index)
    assert by_item == {("Bag", 1): [1, 2], ("Shoe", 1): [1, 2], ("Shoe", 2): [1, 2]}


def test_estimated_cost_falls_back(app):
    explicit = to_pickup(quoted_amount=1500)
    receive_items(explicit.id, received_payload(explicit), estimated_cost="1750.50")
    assert explicit.service_details.estimated_cost == Decimal("1750.50")

    unquoted = to_pickup(quoted_amount=None)
    receive_items(unquoted.id, received_payload(unquoted))
    assert unquoted.service_details.estimated_cost == Decimal("0.00")


def test_items_without_photos_are_allowed_if_any_photo_sent(app):
    enquiry = to_pickup()
    payload = [
        {"product": "Bag", "item_index": 1, "photos": [PHOTO]},
        {"product": "Shoe", "item_index": 1, "photos": []},
    ]

    receive_items(enquiry.id, payload)

    assert Photo.query.filter_by(enquiry_id=enquiry.id).count() == 1


def test_photo_cap_is_a_hard_error(app):
    enquiry = to_pickup()
    payload = [{"product": "Bag", "item_index": 1, "photos": [PHOTO] * 5}]

    with pytest.raises(ValidationError):
        receive_items(enquiry.id, payload)

    assert enquiry.current_stage == "pickup"
    assert Photo.query.count() == 0
    assert ServiceDetails.query.count() == 0


@pytest.mark.parametrize(
    "payload,error",
    [
        ([], ValidationError),
        ([{"product": "Bag", "item_index": 1, "photos": []}], ValidationError),
        ([{"product": "Bag", "item_index": 1, "photos": [PHOTO]}] * 2, ValidationError),
        ([{"product": "Bag", "item_index": 2, "photos": [PHOTO]}], NotFound),
        ([{"product": "Jacket", "item_index": 1, "photos": [PHOTO]}], NotFound),
        ([{"product": "Bag", "item_index": 1, "photos": "not-a-list"}], ValidationError),
    ],
)
def test_malformed_item_lists(app, payload, error):
    enquiry = to_pickup()

    with pytest.raises(error):
        receive_items(enquiry.id, payload)
    assert enquiry.current_stage == "pickup"


def test_receive_requires_pickup_stage(app):
    enquiry = make_enquiry()
    with pytest.raises(NotFound):
        receive_items(enquiry.id, received_payload(enquiry))
    with pytest.raises(NotFound):
        receive_items(404, [])


def test_second_receive_is_refused_once_in_service(app):
    enquiry = to_pickup()
    receive_items(enquiry.id, received_payload(enquiry))

    with pytest.raises(NotFound):
        receive_items(enquiry.id, received_payload(enquiry))
    assert Photo.query.filter_by(enquiry_id=enquiry.id).count() == 3


def test_assign_then_collect(app):
    enquiry = to_pickup()

    assign_pickup(enquiry.id, "Suresh")
    assert enquiry.pickup_details.status == "assigned"
    assert enquiry.pickup_details.assigned_to == "Suresh"

    mark_collected(enquiry.id, PHOTO, "picked up at gate")
    details = enquiry.pickup_details
    assert details.status == "collected"
    assert details.collected_at is not None
    proof = db.session.get(Photo, details.collection_photo_id)
    assert (proof.stage, proof.photo_type) == ("pickup", "after_photo")

    received = receive_items(enquiry.id, received_payload(enquiry))
    assert received.pickup_details.status == "received"


def test_pickup_status_never_regresses(app):
    enquiry = to_pickup()

    with pytest.raises(PreconditionFailed):
        mark_collected(enquiry.id, PHOTO)

    assign_pickup(enquiry.id, "Suresh")
    assign_pickup(enquiry.id, "Anil")  # reassigning keeps the same status
    mark_collected(enquiry.id, PHOTO)

    with pytest.raises(PreconditionFailed):
        assign_pickup(enquiry.id, "Suresh")
    with pytest.raises(PreconditionFailed):
        mark_collected(enquiry.id, PHOTO)
    assert enquiry.pickup_details.status == "collected"
    assert enquiry.pickup_details.assigned_to == "Anil"


def test_pickup_stats_count_open_pickups(app):
    to_pickup()  # no pickup details yet
    assigned = to_pickup(customer_name="Meera Das", phone="9000000002")
    assign_pickup(assigned.id, "Suresh")
    collected = to_pickup(customer_name="Joseph Mathew", phone="9000000003")
    assign_pickup(collected.id, "Anil")
    mark_collected(collected.id, PHOTO)
    make_enquiry(phone="9000000004")
    to_service(phone="9000000005")

    assert pickup_stats() == {
        "scheduled_count": 1,
        "assigned_count": 1,
        "collected_count": 1,
        "received_count": 0,
        "total_pickups": 3,
    }


def test_pickup_stats_route(client):
    to_pickup()

    response = client.get("/pickup/stats")

    assert response.status_code == 200
    assert response.get_json()["scheduled_count"] == 1
