from flask import Blueprint, jsonify, request, current_app
from portal.controllers.dashboard_controller import DashboardController
from portal.utils.decorators import permission_required
import logging

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard_api', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('/resumen', methods=['GET'])
@permission_required(accion='consultar_dashboard')
def resumen():
    try:
        filtros = {k: v for k, v in request.args.items() if v is not None and v != "" and v != "todos"}
        response, status = DashboardController().resumen(filtros)
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en resumen: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@dashboard_bp.route('/consolidado', methods=['GET'])
@permission_required(accion='consultar_consolidado')
def consolidado():
    try:
        filtros = {k: v for k, v in request.args.items() if v is not None and v != ""}
        page = int(filtros.pop('page', 1))
        page_size = min(int(filtros.pop('page_size', current_app.config.get('DEFAULT_PAGE_SIZE', 20))),
                        current_app.config.get('MAX_PAGE_SIZE', 100))
        response, status = DashboardController().consolidado(filtros, page, page_size)
        return jsonify(response), status
    except ValueError:
        return jsonify({"success": False, "error": "Parámetros de paginación inválidos"}), 400
    except Exception as e:
        logger.error(f"Error inesperado en consolidado: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@dashboard_bp.route('/metricas/sincronizar', methods=['POST'])
@permission_required(accion='consultar_dashboard')
def sincronizar_metricas():
    try:
        result = DashboardController().sincronizar_metricas()
        status = 200 if result.get('success') else 500
        return jsonify(result), status
    except Exception as e:
        logger.error(f"Error inesperado en sincronizar_metricas: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500
