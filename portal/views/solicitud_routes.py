from flask import Blueprint, jsonify, request
from portal.controllers.solicitud_controller import SolicitudController
from portal.utils.decorators import permission_required, permission_any_of
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

solicitudes_bp = Blueprint('solicitudes_api', __name__, url_prefix='/api/solicitudes')


def _error_interno(funcion: str, e: Exception):
    logger.error(f"Error inesperado en {funcion}: {str(e)}")
    return jsonify({"success": False, "error": "Error interno del servidor"}), 500


def _comentario():
    datos_json = request.get_json(silent=True) or {}
    return datos_json.get('comentario') or datos_json.get('detalle')


# -----------------------------------------------------------------------------
# Solicitante
# -----------------------------------------------------------------------------

@solicitudes_bp.route('', methods=['POST'])
@permission_required(accion='crear_solicitud')
def crear_solicitud():
    try:
        datos_json = request.get_json(silent=True)
        if not datos_json:
            return jsonify({"success": False, "error": "No se recibieron datos JSON válidos"}), 400
        response, status = SolicitudController().crear_solicitud(datos_json, usuario_actual())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('crear_solicitud', e)


@solicitudes_bp.route('/mias', methods=['GET'])
@permission_required(accion='crear_solicitud')
def mis_solicitudes():
    try:
        response, status = SolicitudController().mis_solicitudes(usuario_actual())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('mis_solicitudes', e)


@solicitudes_bp.route('/<int:solicitud_id>/calificar', methods=['POST'])
@permission_required(accion='crear_solicitud')
def calificar(solicitud_id):
    try:
        response, status = SolicitudController().calificar(
            solicitud_id, request.get_json(silent=True), usuario_actual()
        )
        return jsonify(response), status
    except Exception as e:
        return _error_interno('calificar', e)


# -----------------------------------------------------------------------------
# Mantenimiento
# -----------------------------------------------------------------------------

@solicitudes_bp.route('/mantenimiento', methods=['GET'])
@permission_any_of('gestionar_mantenimiento', 'consultar_kpis_mantenimiento')
def solicitudes_mantenimiento():
    try:
        response, status = SolicitudController().solicitudes_mantenimiento()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitudes_mantenimiento', e)


@solicitudes_bp.route('/mantenimiento/<int:solicitud_id>/avanzar', methods=['POST'])
@permission_required(accion='gestionar_mantenimiento')
def avanzar_mantenimiento(solicitud_id):
    try:
        datos_json = request.get_json(silent=True) or {}
        response, status = SolicitudController().avanzar_mantenimiento(solicitud_id, datos_json.get('accion_realizada'))
        return jsonify(response), status
    except Exception as e:
        return _error_interno('avanzar_mantenimiento', e)


@solicitudes_bp.route('/mantenimiento/kpis', methods=['GET'])
@permission_required(accion='consultar_kpis_mantenimiento')
def kpis_mantenimiento():
    try:
        response, status = SolicitudController().kpis_mantenimiento()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('kpis_mantenimiento', e)


# -----------------------------------------------------------------------------
# Gestión de Calidad
# -----------------------------------------------------------------------------

@solicitudes_bp.route('/consecutivos/pendientes', methods=['GET'])
@permission_required(accion='asignar_consecutivo')
def pendientes_consecutivo():
    try:
        response, status = SolicitudController().pendientes_consecutivo()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('pendientes_consecutivo', e)


@solicitudes_bp.route('/consecutivos/historial', methods=['GET'])
@permission_required(accion='asignar_consecutivo')
def historial_consecutivos():
    try:
        response, status = SolicitudController().historial_consecutivos()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('historial_consecutivos', e)


@solicitudes_bp.route('/<int:solicitud_id>/consecutivo', methods=['POST'])
@permission_required(accion='asignar_consecutivo')
def asignar_consecutivo(solicitud_id):
    try:
        response, status = SolicitudController().asignar_consecutivo(solicitud_id)
        return jsonify(response), status
    except Exception as e:
        return _error_interno('asignar_consecutivo', e)


# -----------------------------------------------------------------------------
# Compras
# -----------------------------------------------------------------------------

@solicitudes_bp.route('/compras', methods=['GET'])
@permission_required(accion='gestionar_compras')
def solicitudes_compras():
    try:
        response, status = SolicitudController().solicitudes_compras()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitudes_compras', e)


@solicitudes_bp.route('/compras/<int:solicitud_id>/enviar-gerencia', methods=['POST'])
@permission_required(accion='gestionar_compras')
def enviar_gerencia(solicitud_id):
    try:
        response, status = SolicitudController().enviar_gerencia(solicitud_id, usuario_actual(), _comentario())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('enviar_gerencia', e)


@solicitudes_bp.route('/compras/<int:solicitud_id>/correccion', methods=['POST'])
@permission_required(accion='gestionar_compras')
def solicitar_correccion(solicitud_id):
    try:
        response, status = SolicitudController().solicitar_correccion(solicitud_id, usuario_actual(), _comentario())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitar_correccion', e)


@solicitudes_bp.route('/compras/<int:solicitud_id>/orden', methods=['POST'])
@permission_required(accion='gestionar_compras')
def enviar_orden_revision(solicitud_id):
    try:
        response, status = SolicitudController().enviar_orden_revision(solicitud_id, usuario_actual(), _comentario())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('enviar_orden_revision', e)


@solicitudes_bp.route('/compras/<int:solicitud_id>/ejecutar', methods=['POST'])
@permission_required(accion='gestionar_compras')
def ejecutar_compra(solicitud_id):
    try:
        response, status = SolicitudController().ejecutar_compra(solicitud_id, usuario_actual(), _comentario())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('ejecutar_compra', e)


@solicitudes_bp.route('/compras/kpis', methods=['GET'])
@permission_required(accion='consultar_kpis_compras')
def kpis_compras():
    try:
        response, status = SolicitudController().kpis_compras()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('kpis_compras', e)


# -----------------------------------------------------------------------------
# Gerencia
# -----------------------------------------------------------------------------

@solicitudes_bp.route('/gerencia', methods=['GET'])
@permission_required(accion='aprobar_solicitudes')
def solicitudes_gerencia():
    try:
        response, status = SolicitudController().solicitudes_gerencia()
        return jsonify(response), status
    except Exception as e:
        return _error_interno('solicitudes_gerencia', e)


@solicitudes_bp.route('/gerencia/<int:solicitud_id>/aprobar', methods=['POST'])
@permission_required(accion='aprobar_solicitudes')
def aprobar(solicitud_id):
    try:
        response, status = SolicitudController().aprobar(solicitud_id, usuario_actual(), _comentario())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('aprobar', e)


@solicitudes_bp.route('/gerencia/<int:solicitud_id>/rechazar', methods=['POST'])
@permission_required(accion='aprobar_solicitudes')
def rechazar(solicitud_id):
    try:
        response, status = SolicitudController().rechazar(solicitud_id, usuario_actual(), _comentario())
        return jsonify(response), status
    except Exception as e:
        return _error_interno('rechazar', e)
