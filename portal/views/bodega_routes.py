from flask import Blueprint, jsonify, request
from portal.controllers.bodega_controller import BodegaController
from portal.utils.decorators import permission_required
import logging

logger = logging.getLogger(__name__)

bodega_bp = Blueprint('bodega_api', __name__, url_prefix='/api/bodega')


def _error_interno(funcion: str, e: Exception):
    logger.error(f"Error inesperado en {funcion}: {str(e)}")
    return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@bodega_bp.route('/pedidos', methods=['GET'])
@permission_required(accion='gestionar_bodega')
def pedidos_bodega():
    try:
        response, status = BodegaController().pedidos_bodega()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('pedidos_bodega', e)


@bodega_bp.route('/historial', methods=['GET'])
@permission_required(accion='gestionar_bodega')
def historial_entregas():
    try:
        response, status = BodegaController().historial_entregas()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('historial_entregas', e)


@bodega_bp.route('/pedidos/<int:pedido_id>/items', methods=['GET'])
@permission_required(accion='gestionar_bodega')
def items_pedido(pedido_id):
    try:
        response, status = BodegaController().items_pedido(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('items_pedido', e)


@bodega_bp.route('/items/<int:item_id>/marcar', methods=['POST'])
@permission_required(accion='gestionar_bodega')
def marcar_item(item_id):
    try:
        response, status = BodegaController().marcar_item(item_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('marcar_item', e)


@bodega_bp.route('/items/<int:item_id>', methods=['PUT'])
@permission_required(accion='gestionar_bodega')
def guardar_item(item_id):
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = BodegaController().guardar_item(
            item_id, datos_json.get('cantidad_entregada'), datos_json.get('observacion')
        )
        return jsonify(response), status
    except Exception as e:
        return _error_interno('guardar_item', e)


@bodega_bp.route('/pedidos/<int:pedido_id>/confirmar-entrega', methods=['POST'])
@permission_required(accion='gestionar_bodega')
def confirmar_entrega(pedido_id):
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = BodegaController().confirmar_entrega(pedido_id, bool(datos_json.get('confirmar_parcial')))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('confirmar_entrega', e)


@bodega_bp.route('/pedidos/<int:pedido_id>/solicitar-autorizacion', methods=['POST'])
@permission_required(accion='gestionar_bodega')
def solicitar_autorizacion(pedido_id):
    try:
        response, status = BodegaController().solicitar_autorizacion(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitar_autorizacion', e)


@bodega_bp.route('/pedidos/<int:pedido_id>/despachar', methods=['POST'])
@permission_required(accion='gestionar_bodega')
def despachar(pedido_id):
    try:
        response, status = BodegaController().despachar(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('despachar', e)


@bodega_bp.route('/autorizaciones', methods=['GET'])
@permission_required(accion='autorizar_despacho')
def pendientes_autorizacion():
    try:
        response, status = BodegaController().pendientes_autorizacion()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('pendientes_autorizacion', e)


@bodega_bp.route('/pedidos/<int:pedido_id>/autorizar', methods=['POST'])
@permission_required(accion='autorizar_despacho')
def autorizar_despacho(pedido_id):
    try:
        response, status = BodegaController().autorizar_despacho(pedido_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('autorizar_despacho', e)
