from flask import Blueprint, jsonify, request
from portal.controllers.produccion_controller import ProduccionController
from portal.controllers.pedido_controller import PedidoController
from portal.utils.decorators import permission_required, permission_any_of
from portal.utils.estados import ASIGNADO_PRODUCCION, ASIGNADO_ACONDICIONAMIENTO
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

produccion_bp = Blueprint('produccion_api', __name__, url_prefix='/api/produccion')


def _error_interno(funcion: str, e: Exception):
    logger.error(f"Error inesperado en {funcion}: {str(e)}")
    return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@produccion_bp.route('/pedidos', methods=['GET'])
@permission_required(accion='gestionar_produccion')
def pedidos_produccion():
    try:
        response, status = PedidoController().listar_por_asignado(ASIGNADO_PRODUCCION)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('pedidos_produccion', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/aceptar', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def aceptar_pedido(pedido_id):
    try:
        response, status = ProduccionController().aceptar_pedido(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('aceptar_pedido', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/lote', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def registrar_lote(pedido_id):
    try:
        response, status = ProduccionController().registrar_lote(pedido_id, request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('registrar_lote', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/fechas', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def asignar_fechas(pedido_id):
    try:
        response, status = ProduccionController().asignar_fechas(pedido_id, request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('asignar_fechas', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/materias-primas', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def solicitar_materias_primas(pedido_id):
    try:
        response, status = ProduccionController().solicitar_materias_primas(pedido_id, request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitar_materias_primas', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/materias-primas', methods=['GET'])
@permission_required(accion='gestionar_produccion')
def materiales_solicitados(pedido_id):
    try:
        response, status = ProduccionController().materiales_solicitados(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('materiales_solicitados', e)


@produccion_bp.route('/materias-primas/catalogo', methods=['GET'])
@permission_required(accion='gestionar_produccion')
def catalogo_materias_primas():
    try:
        response, status = ProduccionController().catalogo_materias_primas()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('catalogo_materias_primas', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/devolver-bodega', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def devolver_a_bodega(pedido_id):
    """Producción devuelve el pedido a Bodega por material incompleto."""
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = ProduccionController().devolver_a_bodega(pedido_id, datos_json.get('motivo'), usuario_actual())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('devolver_a_bodega', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/iniciar', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def iniciar_produccion(pedido_id):
    try:
        response, status = ProduccionController().iniciar_produccion(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('iniciar_produccion', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/microbiologia', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def enviar_solicitud_microbiologia(pedido_id):
    try:
        response, status = ProduccionController().enviar_solicitud_microbiologia(
            pedido_id, request.get_json(silent=True), usuario_actual()
        )
        return jsonify(response), status
    except Exception as e:
        return _error_interno('enviar_solicitud_microbiologia', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/omitir-microbiologia', methods=['POST'])
@permission_required(accion='gestionar_produccion')
def omitir_microbiologia(pedido_id):
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = ProduccionController().omitir_microbiologia(pedido_id, datos_json.get('forma_manual'))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('omitir_microbiologia', e)


@produccion_bp.route('/acondicionamiento/pedidos', methods=['GET'])
@permission_required(accion='gestionar_acondicionamiento')
def pedidos_acondicionamiento():
    try:
        response, status = PedidoController().listar_por_asignado(ASIGNADO_ACONDICIONAMIENTO)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('pedidos_acondicionamiento', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/acondicionamiento/iniciar', methods=['POST'])
@permission_any_of('gestionar_produccion', 'gestionar_acondicionamiento')
def iniciar_acondicionamiento(pedido_id):
    try:
        response, status = ProduccionController().iniciar_acondicionamiento(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('iniciar_acondicionamiento', e)


@produccion_bp.route('/pedidos/<int:pedido_id>/acondicionamiento/finalizar', methods=['POST'])
@permission_required(accion='gestionar_acondicionamiento')
def finalizar_acondicionamiento(pedido_id):
    try:
        response, status = ProduccionController().finalizar_acondicionamiento(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('finalizar_acondicionamiento', e)
