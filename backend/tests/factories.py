"""Helpers that walk an enquiry to a given stage through the real operations."""
from repairflow.billing import create_billing
from repairflow.delivery import move_to_delivery
from repairflow.intake import convert_to_pickup, create_enquiry
from repairflow.items import item_instances
from repairflow.pickup import receive_items
from repairflow.servicing import (
    assign_services,
    complete_service,
    complete_service_workflow,
    save_final_photo,
    start_service,
)

PHOTO = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="
BAG_AND_SHOES = [{"product": "Bag", "quantity": 1}, {"product": "Shoe", "quantity": 2}]


def make_enquiry(products=None, quoted_amount=1500, **kwargs):
    fields = {
        "customer_name": "Ravi Kumar",
        "phone": "9000000001",
        "address": "22 Park Street",
        "inquiry_type": "Phone",
    }
    fields.update(kwargs)
    return create_enquiry(products=products or BAG_AND_SHOES, quoted_amount=quoted_amount, **fields)


def to_pickup(**kwargs):
    enquiry = make_enquiry(**kwargs)
    return convert_to_pickup(enquiry.id)


def received_payload(enquiry, photos_per_item=1):
    return [
        {
            "product": key.product,
            "item_index": key.item_index,
            "photos": [f"{PHOTO}{key}-{n}" for n in range(photos_per_item)],
            "notes": f"{key} scuffed",
        }
        for key in item_instances(enquiry.products)
    ]


def to_service(estimated_cost=None, **kwargs):
    enquiry = to_pickup(**kwargs)
    return receive_items(enquiry.id, received_payload(enquiry), estimated_cost=estimated_cost)


def assign_everywhere(enquiry, service_types=("Repairing",)):
    for key in item_instances(enquiry.products):
        assign_services(enquiry.id, list(service_types), key.product, key.item_index)
    return enquiry.service_assignments


def finish(assignment):
    start_service(assignment.id, PHOTO + "before")
    complete_service(assignment.id, PHOTO + "after")


def to_billing(service_types=("Repairing",), **kwargs):
    enquiry = to_service(**kwargs)
    for assignment in assign_everywhere(enquiry, service_types):
        finish(assignment)
    save_final_photo(enquiry.id, PHOTO + "final", "all done")
    return complete_service_workflow(enquiry.id, 1800, "stitched and polished")


def priced_lines(enquiry, amount=1000, discount=10, gst=18):
    return [
        {
            "service_type": a.service_type,
            "product": a.product,
            "item_index": a.item_index,
            "original_amount": amount,
            "discount_value": discount,
            "gst_rate": gst,
        }
        for a in enquiry.service_assignments
    ]


def to_delivery(**kwargs):
    enquiry = to_billing(**kwargs)
    create_billing(enquiry.id, priced_lines(enquiry))
    return move_to_delivery(enquiry.id)
