"""Health check endpoint."""
from flask import Blueprint, jsonify

from zakat_tracker.db import get_db

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz')
def healthz():
    """Return health status of the application."""
    get_db().execute('SELECT 1').fetchone()
    return jsonify({'status': 'ok'})
