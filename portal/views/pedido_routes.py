from flask import Blueprint, jsonify, request
from portal.controllers.pedido_controller import PedidoController
from portal.controllers.observacion_controller import ObservacionController
from portal.utils.decorators import permission_required, permission_any_of
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

pedidos_bp = Blueprint('pedidos_api', __name__, url_prefix='/api/pedidos')


def _filtros_query():
    return {k: v for k, v in request.args.items() if v is not None and v != ""}


@pedidos_bp.route('', methods=['POST'])
@permission_required(accion='registrar_pedido')
def crear_pedido():
    try:
        datos_json = request.get_json(silent=True)
        if not datos_json:
            return jsonify({"success": False, "error": "No se recibieron datos JSON válidos"}), 400
        response, status = PedidoController().crear_pedido(datos_json, usuario_actual())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en crear_pedido: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/carga-masiva/previsualizar', methods=['POST'])
@permission_required(accion='registrar_pedido')
def previsualizar_carga_masiva():
    """Recibe el Excel de pedidos y devuelve las filas interpretadas sin guardar nada."""
    try:
        archivo = request.files.get('archivo')
        if archivo is None or not archivo.filename:
            return jsonify({"success": False, "error": "Debe adjuntar un archivo Excel."}), 400
        response, status = PedidoController().previsualizar_carga_masiva(archivo)
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en previsualizar_carga_masiva: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/carga-masiva', methods=['POST'])
@permission_required(accion='registrar_pedido')
def crear_pedidos_masivos():
    try:
        datos_json = request.get_json(silent=True) or {}
        items = datos_json.get('items')
        if not items:
            return jsonify({"success": False, "error": "No hay pedidos para registrar."}), 400
        response, status = PedidoController().crear_pedidos_masivos(items, usuario_actual())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en crear_pedidos_masivos: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('', methods=['GET'])
@permission_required(accion='consultar_consolidado')
def listar_pedidos():
    try:
        response, status = PedidoController().listar_pedidos(_filtros_query())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en listar_pedidos: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/en-curso', methods=['GET'])
@permission_required(accion='consultar_pedidos_en_curso')
def pedidos_en_curso():
    try:
        response, status = PedidoController().pedidos_en_curso(_filtros_query())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en pedidos_en_curso: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/finalizados', methods=['GET'])
@permission_required(accion='consultar_pedidos_finalizados')
def pedidos_finalizados():
    try:
        response, status = PedidoController().pedidos_finalizados(_filtros_query())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en pedidos_finalizados: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/<int:pedido_id>', methods=['GET'])
@permission_required(accion='consultar_detalle_pedido')
def detalle_pedido(pedido_id):
    try:
        response, status = PedidoController().obtener_detalle(pedido_id, usuario_actual().get('rol'))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en detalle_pedido {pedido_id}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/<int:pedido_id>/cancelar', methods=['POST'])
@permission_required(accion='cancelar_pedido')
def cancelar_pedido(pedido_id):
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = PedidoController().cancelar_pedido(pedido_id, datos_json.get('motivo'), usuario_actual())
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en cancelar_pedido {pedido_id}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/<int:pedido_id>/observaciones', methods=['GET'])
@permission_required(accion='consultar_detalle_pedido')
def listar_observaciones(pedido_id):
    try:
        response, status = ObservacionController().listar(pedido_id)
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en listar_observaciones {pedido_id}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/<int:pedido_id>/observaciones', methods=['POST'])
@permission_required(accion='registrar_observacion')
def agregar_observacion(pedido_id):
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = ObservacionController().agregar(
            pedido_id, usuario_actual().get('usuario'), datos_json.get('observacion')
        )
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en agregar_observacion {pedido_id}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@pedidos_bp.route('/asignados/<string:area>', methods=['GET'])
@permission_any_of('gestionar_produccion', 'gestionar_acondicionamiento', 'gestionar_bodega',
                   'liberar_producto_terminado', 'autorizar_despacho')
def pedidos_asignados(area):
    try:
        response, status = PedidoController().listar_por_asignado(area)
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en pedidos_asignados {area}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500
