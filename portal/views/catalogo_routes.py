from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from portal.controllers.producto_controller import ProductoController
from portal.utils.decorators import permission_required
import logging

logger = logging.getLogger(__name__)

catalogo_bp = Blueprint('catalogo_api', __name__, url_prefix='/api/catalogo')


@catalogo_bp.route('/productos', methods=['GET'])
@jwt_required()
def listar_productos():
    try:
        response, status = ProductoController().listar_productos()
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en listar_productos: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@catalogo_bp.route('/productos', methods=['POST'])
@permission_required(accion='gestionar_productos')
def crear_producto():
    try:
        datos_json = request.get_json(silent=True)
        if not datos_json:
            return jsonify({"success": False, "error": "No se recibieron datos JSON válidos"}), 400
        response, status = ProductoController().crear_producto(datos_json)
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en crear_producto: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@catalogo_bp.route('/clientes', methods=['GET'])
@jwt_required()
def listar_clientes():
    try:
        response, status = ProductoController().listar_clientes()
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en listar_clientes: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@catalogo_bp.route('/solicitudes', methods=['GET'])
@jwt_required()
def catalogos_solicitud():
    """Áreas, tipos de solicitud (filtrables por `area_id`) y prioridades."""
    try:
        response, status = ProductoController().catalogos_solicitud(request.args.get('area_id', type=int))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en catalogos_solicitud: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@catalogo_bp.route('/flujos', methods=['GET'])
@jwt_required()
def flujos_activos():
    try:
        response, status = ProductoController().flujos_activos()
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en flujos_activos: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500
