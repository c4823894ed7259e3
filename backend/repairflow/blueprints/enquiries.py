from flask import Blueprint, jsonify, request

from ..intake import convert_to_pickup, create_enquiry
from ..jobs import get_job, list_jobs
from ..schemas import ConvertRequest, EnquiryCreate, parse

enquiries_bp = Blueprint('enquiries', __name__)


@enquiries_bp.get('/')
def list_enquiries():
    rows = list_jobs(stage=request.args.get('stage'), search=request.args.get('q'))
    return jsonify(rows)


@enquiries_bp.post('/')
def new_enquiry():
    payload = parse(EnquiryCreate, request.get_json(silent=True))
    enquiry = create_enquiry(
        customer_name=payload.customer_name,
        phone=payload.phone,
        products=[line.model_dump() for line in payload.products],
        address=payload.address,
        message=payload.message,
        inquiry_type=payload.inquiry_type,
        quoted_amount=payload.quoted_amount,
        notes=payload.notes,
    )
    return jsonify(get_job(enquiry.id)), 201


@enquiries_bp.get('/<int:enquiry_id>')
def show_enquiry(enquiry_id):
    return jsonify(get_job(enquiry_id))


@enquiries_bp.post('/<int:enquiry_id>/convert')
def convert(enquiry_id):
    payload = parse(ConvertRequest, request.get_json(silent=True))
    convert_to_pickup(enquiry_id, payload.quoted_amount)
    return jsonify(get_job(enquiry_id))
