from flask import Blueprint, jsonify, request

from ..delivery import complete_delivery, mark_out_for_delivery, move_to_delivery, schedule_delivery
from ..jobs import get_job
from ..schemas import CompleteDeliveryRequest, OutForDeliveryRequest, ScheduleDeliveryRequest, parse

delivery_bp = Blueprint('delivery', __name__)


@delivery_bp.post('/<int:enquiry_id>/move')
def move(enquiry_id):
    move_to_delivery(enquiry_id)
    return jsonify(get_job(enquiry_id))


@delivery_bp.post('/<int:enquiry_id>/schedule')
def schedule(enquiry_id):
    payload = parse(ScheduleDeliveryRequest, request.get_json(silent=True))
    schedule_delivery(enquiry_id, payload.delivery_method, payload.scheduled_time, payload.delivery_address)
    return jsonify(get_job(enquiry_id))


@delivery_bp.post('/<int:enquiry_id>/out')
def out_for_delivery(enquiry_id):
    payload = parse(OutForDeliveryRequest, request.get_json(silent=True))
    mark_out_for_delivery(enquiry_id, payload.assigned_to)
    return jsonify(get_job(enquiry_id))


@delivery_bp.post('/<int:enquiry_id>/complete')
def complete(enquiry_id):
    payload = parse(CompleteDeliveryRequest, request.get_json(silent=True))
    complete_delivery(enquiry_id, payload.proof_photo, payload.customer_signature, payload.notes)
    return jsonify(get_job(enquiry_id))
