"""Item instances: one physical unit among a product line's quantity."""
from typing import Iterable, NamedTuple

from .errors import NotFound, ValidationError


class ItemKey(NamedTuple):
    product: str
    item_index: int

    def __str__(self) -> str:
        return f"{self.product}#{self.item_index}"


def product_quantities(products: Iterable) -> dict[str, int]:
    """Total quantity per product, in first-seen order.

    Repeated product lines are merged so item indices never collide.
    """
    totals: dict[str, int] = {}
    for line in products:
        totals[line.product] = totals.get(line.product, 0) + int(line.quantity or 0)
    return totals


def item_instances(products: Iterable) -> list[ItemKey]:
    return [
        ItemKey(product, index)
        for product, quantity in product_quantities(products).items()
        for index in range(1, quantity + 1)
    ]


def coerce_item_key(product, item_index) -> ItemKey:
    if not product or not isinstance(product, str):
        raise ValidationError("product is required")
    try:
        index = int(item_index)
    except (TypeError, ValueError):
        raise ValidationError(f"item_index must be an integer, got {item_index!r}")
    if index < 1:
        raise ValidationError("item_index starts at 1")
    return ItemKey(product, index)


def require_item(enquiry, product, item_index) -> ItemKey:
    """Validate that ``(product, item_index)`` addresses a unit of ``enquiry``."""
    key = coerce_item_key(product, item_index)
    quantity = product_quantities(enquiry.products).get(key.product, 0)
    if key.item_index > quantity:
        raise NotFound(f"enquiry {enquiry.id} has no item {key}")
    return key
