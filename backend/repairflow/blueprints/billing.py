from flask import Blueprint, jsonify, request

from ..billing import create_billing, draft_billing_lines, send_invoice
from ..schemas import BillingRequest, parse

billing_bp = Blueprint('billing', __name__)


@billing_bp.get('/<int:enquiry_id>/draft')
def draft(enquiry_id):
    return jsonify(draft_billing_lines(enquiry_id))


@billing_bp.post('/<int:enquiry_id>')
def create_invoice(enquiry_id):
    payload = parse(BillingRequest, request.get_json(silent=True))
    billing = create_billing(
        enquiry_id,
        [line.model_dump() for line in payload.items],
        gst_included=payload.gst_included,
        notes=payload.notes,
    )
    return jsonify(billing.to_dict()), 201


@billing_bp.post('/<int:enquiry_id>/send')
def send(enquiry_id):
    billing = send_invoice(enquiry_id)
    return jsonify({'invoice_number': billing.invoice_number, 'sent': True})
