import re
from datetime import date
from decimal import Decimal

import pytest

from factories import priced_lines, to_billing, to_service
from repairflow.billing import create_billing, draft_billing_lines, send_invoice
from repairflow.delivery import move_to_delivery
from repairflow.errors import ConflictError, NotFound, PreconditionFailed, ValidationError
from repairflow.models import BillingDetails, BillingItem

TWO_ITEMS = [{"product": "Bag", "quantity": 1}, {"product": "Shoe", "quantity": 1}]


def test_invoice_totals_and_number(app):
    enquiry = to_billing(products=TWO_ITEMS)

    billing = create_billing(enquiry.id, priced_lines(enquiry, amount=1000, discount=10, gst=18))

    assert billing.final_amount == Decimal("2000.00")
    assert billing.subtotal == Decimal("1800.00")
    assert billing.gst_amount == Decimal("324.00")
    assert billing.total_amount == Decimal("2124.00")
    assert billing.invoice_date == date.today()
    assert re.fullmatch(rf"INV-{date.today():%Y%m%d}-\d{{5}}", billing.invoice_number)
    assert billing.invoice_number.endswith(f"{billing.id:05d}")
    assert billing.customer_name == "Ravi Kumar"
    assert enquiry.final_amount == Decimal("2124.00")
    assert enquiry.current_stage == "billing"


def test_invoice_lines_add_up(app):
    enquiry = to_billing(service_types=("Repairing", "Cleaning"))
    lines = priced_lines(enquiry, amount="333.33", discount="12.5", gst=12)
    lines[0]["description"] = "Heel rebuild"

    billing = create_billing(enquiry.id, lines)

    items = billing.items
    assert len(items) == 6
    assert sum(i.final_amount for i in items) == billing.subtotal
    assert sum(i.gst_amount for i in items) == billing.gst_amount
    assert billing.total_amount == billing.subtotal + billing.gst_amount
    for item in items:
        assert item.final_amount == item.original_amount - item.discount_amount
    assert items[0].description == "Heel rebuild"
    assert {(i.service_type, i.product, i.item_index) for i in items} == {
        (a.service_type, a.product, a.item_index) for a in enquiry.service_assignments
    }


def test_gst_can_be_excluded(app):
    enquiry = to_billing(products=TWO_ITEMS)

    billing = create_billing(enquiry.id, priced_lines(enquiry), gst_included=False)

    assert billing.gst_included is False
    assert billing.gst_amount == Decimal("0.00")
    assert billing.total_amount == billing.subtotal == Decimal("1800.00")


def test_missing_gst_rate_uses_configured_default(app):
    app.config["GST_RATE"] = 5
    enquiry = to_billing(products=[{"product": "Belt", "quantity": 1}])
    lines = priced_lines(enquiry, amount=200, discount=0)
    del lines[0]["gst_rate"]

    billing = create_billing(enquiry.id, lines)

    assert billing.items[0].gst_rate == Decimal("5.00")
    assert billing.gst_amount == Decimal("10.00")


def test_second_invoice_is_a_conflict(app):
    enquiry = to_billing(products=TWO_ITEMS)
    first = create_billing(enquiry.id, priced_lines(enquiry))

    with pytest.raises(ConflictError):
        create_billing(enquiry.id, priced_lines(enquiry, amount=5))

    assert BillingDetails.query.count() == 1
    assert enquiry.billing_details.invoice_number == first.invoice_number


@pytest.mark.parametrize(
    "mutate",
    [
        lambda lines: lines[0].update(service_type="Dyeing"),
        lambda lines: lines[0].update(item_index=7),
        lambda lines: lines.append(dict(lines[0])),
        lambda lines: lines[0].update(discount_value=150),
        lambda lines: lines[0].update(gst_rate=-1),
        lambda lines: lines[0].update(original_amount="abc"),
        lambda lines: lines[0].update(original_amount=-10),
        lambda lines: lines.clear(),
    ],
)
def test_bad_lines_write_nothing(app, mutate):
    enquiry = to_billing(products=TWO_ITEMS)
    lines = priced_lines(enquiry)
    mutate(lines)

    with pytest.raises(ValidationError):
        create_billing(enquiry.id, lines)

    assert BillingDetails.query.count() == 0
    assert BillingItem.query.count() == 0
    assert enquiry.final_amount is None


def test_billing_requires_billing_stage(app):
    enquiry = to_service()
    with pytest.raises(NotFound):
        create_billing(enquiry.id, [])
    with pytest.raises(NotFound):
        draft_billing_lines(enquiry.id)


def test_draft_lines_cover_each_assignment(app):
    enquiry = to_billing(products=TWO_ITEMS, service_types=("Repairing", "Dyeing"))

    drafts = draft_billing_lines(enquiry.id)

    assert len(drafts) == 4
    assert drafts[0]["original_amount"] == Decimal("0.00")
    assert drafts[0]["gst_rate"] == 18
    assert {d["description"] for d in drafts} >= {"Repairing - Bag#1", "Dyeing - Shoe#1"}


def test_send_invoice_notifies_customer(app, notifications):
    enquiry = to_billing(products=TWO_ITEMS)
    with pytest.raises(PreconditionFailed):
        send_invoice(enquiry.id)

    billing = create_billing(enquiry.id, priced_lines(enquiry))
    sent = send_invoice(enquiry.id)

    assert sent.invoice_number == billing.invoice_number
    assert any(billing.invoice_number in message for message in notifications.messages)


def test_move_to_delivery_needs_invoice(app):
    enquiry = to_billing(products=TWO_ITEMS)
    with pytest.raises(PreconditionFailed):
        move_to_delivery(enquiry.id)

    create_billing(enquiry.id, priced_lines(enquiry))
    moved = move_to_delivery(enquiry.id)

    assert moved.current_stage == "delivery"
    assert moved.delivery_details.status == "ready"
    assert moved.delivery_details.delivery_address == "22 Park Street"
