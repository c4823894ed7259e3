from flask import Blueprint, jsonify, request

from ..jobs import get_job
from ..pickup import assign_pickup, mark_collected, pickup_stats, receive_items
from ..schemas import PhotoRequest, PickupAssign, ReceiveItemsRequest, parse

pickup_bp = Blueprint('pickup', __name__)


@pickup_bp.get('/stats')
def stats():
    return jsonify(pickup_stats())


@pickup_bp.post('/<int:enquiry_id>/assign')
def assign(enquiry_id):
    payload = parse(PickupAssign, request.get_json(silent=True))
    assign_pickup(enquiry_id, payload.assigned_to, payload.scheduled_time)
    return jsonify(get_job(enquiry_id))


@pickup_bp.post('/<int:enquiry_id>/collect')
def collect(enquiry_id):
    payload = parse(PhotoRequest, request.get_json(silent=True))
    mark_collected(enquiry_id, payload.photo, payload.notes)
    return jsonify(get_job(enquiry_id))


@pickup_bp.post('/<int:enquiry_id>/receive')
def receive(enquiry_id):
    payload = parse(ReceiveItemsRequest, request.get_json(silent=True))
    receive_items(
        enquiry_id,
        [item.model_dump() for item in payload.items],
        estimated_cost=payload.estimated_cost,
        notes=payload.notes,
    )
    return jsonify(get_job(enquiry_id))
