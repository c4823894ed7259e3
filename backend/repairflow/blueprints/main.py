from flask import Blueprint, current_app, jsonify

from ..jobs import stage_counts

main_bp = Blueprint('main', __name__)


@main_bp.get('/')
def dashboard():
    return jsonify({'app': current_app.config.get('APP_NAME'), 'stages': stage_counts()})
