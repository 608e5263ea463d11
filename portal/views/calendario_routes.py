from flask import Blueprint, jsonify, request
from portal.controllers.calendario_controller import CalendarioController
from portal.utils.decorators import permission_required
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

calendario_bp = Blueprint('calendario_api', __name__, url_prefix='/api/calendario')


@calendario_bp.route('/tareas', methods=['GET'])
@permission_required(accion='consultar_calendario')
def tareas_del_mes():
    try:
        response, status = CalendarioController().tareas_del_mes(
            request.args.get('year', type=int), request.args.get('month', type=int)
        )
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en tareas_del_mes: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@calendario_bp.route('/tareas', methods=['POST'])
@permission_required(accion='gestionar_calendario')
def crear_tarea():
    try:
        datos_json = request.get_json(silent=True)
        if not datos_json:
            return jsonify({"success": False, "error": "No se recibieron datos JSON válidos"}), 400
        response, status = CalendarioController().crear_tarea(datos_json, usuario_actual())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en crear_tarea: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500
