"""Fixed vocabularies of the repair pipeline.

Ordered tuples double as rank tables: a status may only move to an equal or
later position.
"""

STAGES = ("enquiry", "pickup", "service", "billing", "delivery", "completed")

PICKUP_STATUSES = ("scheduled", "assigned", "collected", "received")
SERVICE_STATUSES = ("pending", "in-progress", "done")
DELIVERY_STATUSES = ("ready", "scheduled", "out-for-delivery", "delivered")

SERVICE_TYPES = ("Repairing", "Cleaning", "Dyeing")

PRODUCTS = ("Bag", "Shoe", "Wallet", "Belt", "All type furniture", "Jacket", "Other")
INQUIRY_TYPES = ("Instagram", "Facebook", "WhatsApp", "Phone", "Walk-in", "Website")
ENQUIRY_STATUSES = ("new", "contacted", "converted", "closed", "lost")

DELIVERY_METHODS = ("customer-pickup", "home-delivery")

PHOTO_STAGES = ("pickup", "service", "billing", "delivery")
PHOTO_TYPES = (
    "before_photo",
    "after_photo",
    "overall_before",
    "overall_after",
    "delivery_proof",
)


def rank(statuses: tuple, status: str | None) -> int:
    """Position of ``status`` in ``statuses``; -1 when unset."""
    if status is None:
        return -1
    return statuses.index(status)
