from flask import Blueprint, jsonify
from portal.utils.date_utils import get_now_local

main_bp = Blueprint('main_routes', __name__)

@main_bp.route('/')
def index():
    return jsonify({'success': True, 'message': 'Portal de pedidos de producción'}), 200

@main_bp.route('/api/health')
def health():
    """Chequeo simple para balanceadores y monitoreo."""
    return jsonify({'success': True, 'status': 'ok', 'time': get_now_local().isoformat()}), 200
