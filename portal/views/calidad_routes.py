from flask import Blueprint, jsonify, request
from portal.controllers.calidad_controller import CalidadController, MicrobiologiaController
from portal.utils.decorators import permission_required
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

calidad_bp = Blueprint('calidad_api', __name__, url_prefix='/api/calidad')
microbiologia_bp = Blueprint('microbiologia_api', __name__, url_prefix='/api/microbiologia')


def _error_interno(funcion: str, e: Exception):
    logger.error(f"Error inesperado en {funcion}: {str(e)}")
    return jsonify({"success": False, "error": "Error interno del servidor"}), 500


# -----------------------------------------------------------------------------
# Control de Calidad
# -----------------------------------------------------------------------------

@calidad_bp.route('/pedidos', methods=['GET'])
@permission_required(accion='liberar_producto_terminado')
def pedidos_para_liberacion():
    try:
        response, status = CalidadController().pedidos_para_liberacion_pt()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('pedidos_para_liberacion', e)


@calidad_bp.route('/pedidos/<int:pedido_id>/estado-micro', methods=['GET'])
@permission_required(accion='liberar_producto_terminado')
def estado_micro(pedido_id):
    try:
        response, status = CalidadController().estado_micro(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('estado_micro', e)


@calidad_bp.route('/pedidos/<int:pedido_id>/liberar', methods=['POST'])
@permission_required(accion='liberar_producto_terminado')
def liberar_pt(pedido_id):
    try:
        response, status = CalidadController().liberar_pt(pedido_id, usuario_actual(), request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('liberar_pt', e)


@calidad_bp.route('/etapas', methods=['GET'])
@permission_required(accion='liberar_producto_terminado')
def etapas_pendientes_calidad():
    try:
        response, status = CalidadController().etapas_pendientes()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('etapas_pendientes_calidad', e)


@calidad_bp.route('/etapas/<int:etapa_id>/liberar', methods=['POST'])
@permission_required(accion='liberar_producto_terminado')
def liberar_etapa_calidad(etapa_id):
    try:
        response, status = CalidadController().liberar_etapa(etapa_id, usuario_actual(), request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('liberar_etapa_calidad', e)


@calidad_bp.route('/etapas/<int:etapa_id>/rechazar', methods=['POST'])
@permission_required(accion='liberar_producto_terminado')
def rechazar_etapa_calidad(etapa_id):
    try:
        response, status = CalidadController().rechazar_etapa(etapa_id, usuario_actual(), request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('rechazar_etapa_calidad', e)


@calidad_bp.route('/responsables', methods=['GET'])
@permission_required(accion='liberar_producto_terminado')
def responsables_calidad():
    try:
        response, status = CalidadController().responsables()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('responsables_calidad', e)


@calidad_bp.route('/historial', methods=['GET'])
@permission_required(accion='liberar_producto_terminado')
def historial_calidad():
    try:
        limit = request.args.get('limit', 20, type=int)
        response, status = CalidadController().historial(limit)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('historial_calidad', e)


# -----------------------------------------------------------------------------
# Microbiología
# -----------------------------------------------------------------------------

@microbiologia_bp.route('/solicitudes', methods=['GET'])
@permission_required(accion='gestionar_microbiologia')
def solicitudes_iniciales():
    try:
        response, status = MicrobiologiaController().solicitudes_iniciales()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitudes_iniciales', e)


@microbiologia_bp.route('/solicitudes/<int:solicitud_id>/liberar', methods=['POST'])
@permission_required(accion='gestionar_microbiologia')
def liberar_solicitud(solicitud_id):
    try:
        response, status = MicrobiologiaController().liberar_solicitud(
            solicitud_id, usuario_actual(), request.get_json(silent=True)
        )
        return jsonify(response), status
    except Exception as e:
        return _error_interno('liberar_solicitud', e)


@microbiologia_bp.route('/etapas', methods=['GET'])
@permission_required(accion='gestionar_microbiologia')
def etapas_pendientes_micro():
    try:
        response, status = MicrobiologiaController().etapas_pendientes()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('etapas_pendientes_micro', e)


@microbiologia_bp.route('/etapas/<int:etapa_id>/liberar', methods=['POST'])
@permission_required(accion='gestionar_microbiologia')
def liberar_etapa_micro(etapa_id):
    try:
        response, status = MicrobiologiaController().liberar_etapa(etapa_id, usuario_actual(), request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('liberar_etapa_micro', e)


@microbiologia_bp.route('/etapas/<int:etapa_id>/rechazar', methods=['POST'])
@permission_required(accion='gestionar_microbiologia')
def rechazar_etapa_micro(etapa_id):
    try:
        response, status = MicrobiologiaController().rechazar_etapa(etapa_id, usuario_actual(), request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('rechazar_etapa_micro', e)


@microbiologia_bp.route('/responsables', methods=['GET'])
@permission_required(accion='gestionar_microbiologia')
def responsables_micro():
    try:
        response, status = MicrobiologiaController().responsables()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('responsables_micro', e)


@microbiologia_bp.route('/historial', methods=['GET'])
@permission_required(accion='gestionar_microbiologia')
def historial_micro():
    try:
        limit = request.args.get('limit', 10, type=int)
        response, status = MicrobiologiaController().historial(limit)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('historial_micro', e)
