from flask import Blueprint, jsonify
from portal.controllers.etapa_controller import EtapaController
from portal.utils.decorators import permission_required, permission_any_of
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

etapas_bp = Blueprint('etapas_api', __name__, url_prefix='/api/etapas')


@etapas_bp.route('/pedido/<int:pedido_id>', methods=['GET'])
@permission_required(accion='consultar_detalle_pedido')
def etapas_pedido(pedido_id):
    try:
        response, status = EtapaController().obtener_etapas(pedido_id)
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en etapas_pedido {pedido_id}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@etapas_bp.route('/pedido/<int:pedido_id>/avanzar', methods=['POST'])
@permission_any_of('gestionar_produccion', 'gestionar_acondicionamiento')
def avanzar_etapa(pedido_id):
    """Completa la etapa actual o la envía a revisión si requiere liberación."""
    try:
        response, status = EtapaController().avanzar_etapa(pedido_id, usuario_actual().get('usuario'))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en avanzar_etapa {pedido_id}: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500
