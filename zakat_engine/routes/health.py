"""Health check endpoint."""
from flask import Blueprint, current_app, jsonify

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz')
def healthz():
    """Return health status and the active engine defaults."""
    return jsonify({
        'status': 'ok',
        'default_currency': current_app.config['ZAKAT_DEFAULT_CURRENCY'],
        'eligibility_policy': current_app.config['ZAKAT_ELIGIBILITY_POLICY'],
    })
