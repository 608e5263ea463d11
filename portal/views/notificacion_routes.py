from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from portal.controllers.notificacion_controller import NotificacionController
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

notificaciones_bp = Blueprint('notificaciones_api', __name__, url_prefix='/api/notificaciones')


@notificaciones_bp.route('', methods=['GET'])
@jwt_required()
def listar_notificaciones():
    """
    Bandeja del usuario. El cliente consulta cada `poll_segundos`; con
    `?desde=<iso>` solo llegan las nuevas.
    """
    try:
        response, status = NotificacionController().listar(usuario_actual().get('id'), request.args.get('desde'))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en listar_notificaciones: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@notificaciones_bp.route('/<int:notificacion_id>/leida', methods=['POST'])
@jwt_required()
def marcar_leida(notificacion_id):
    try:
        response, status = NotificacionController().marcar_leida(notificacion_id, usuario_actual().get('id'))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en marcar_leida: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@notificaciones_bp.route('/leidas', methods=['POST'])
@jwt_required()
def marcar_todas_leidas():
    try:
        response, status = NotificacionController().marcar_todas_leidas(usuario_actual().get('id'))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en marcar_todas_leidas: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500
