from flask import Blueprint, jsonify, request

from ..jobs import get_job
from ..schemas import CompleteWorkflowRequest, PhotoRequest, ServiceAssign, parse
from ..servicing import (
    assign_services,
    complete_service,
    complete_service_workflow,
    save_final_photo,
    save_initial_photo,
    service_stats,
    start_service,
)

service_bp = Blueprint('service', __name__)


@service_bp.get('/stats')
def stats():
    return jsonify(service_stats())


@service_bp.post('/<int:enquiry_id>/assign')
def assign(enquiry_id):
    payload = parse(ServiceAssign, request.get_json(silent=True))
    created = assign_services(enquiry_id, payload.service_types, payload.product, payload.item_index)
    return jsonify({'created': [a.to_dict() for a in created], 'job': get_job(enquiry_id)})


@service_bp.post('/assignments/<int:assignment_id>/start')
def start(assignment_id):
    payload = parse(PhotoRequest, request.get_json(silent=True))
    assignment = start_service(assignment_id, payload.photo, payload.notes)
    return jsonify(assignment.to_dict())


@service_bp.post('/assignments/<int:assignment_id>/complete')
def complete(assignment_id):
    payload = parse(PhotoRequest, request.get_json(silent=True))
    assignment = complete_service(assignment_id, payload.photo, payload.notes)
    return jsonify(assignment.to_dict())


@service_bp.post('/<int:enquiry_id>/initial-photo')
def initial_photo(enquiry_id):
    payload = parse(PhotoRequest, request.get_json(silent=True))
    photo = save_initial_photo(enquiry_id, payload.photo, payload.notes)
    return jsonify({'photo_id': photo.id}), 201


@service_bp.post('/<int:enquiry_id>/final-photo')
def final_photo(enquiry_id):
    payload = parse(PhotoRequest, request.get_json(silent=True))
    photo = save_final_photo(enquiry_id, payload.photo, payload.notes)
    return jsonify({'photo_id': photo.id}), 201


@service_bp.post('/<int:enquiry_id>/complete')
def complete_workflow(enquiry_id):
    payload = parse(CompleteWorkflowRequest, request.get_json(silent=True))
    complete_service_workflow(enquiry_id, payload.actual_cost, payload.work_notes)
    return jsonify(get_job(enquiry_id))
