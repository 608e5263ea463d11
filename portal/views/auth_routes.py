from flask import Blueprint, jsonify, request
from flask_jwt_extended import create_access_token, jwt_required, set_access_cookies, unset_jwt_cookies
from portal.controllers.usuario_controller import AuthController
from portal.utils.sesion import usuario_actual
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _respuesta_con_sesion(response: dict, status: int):
    """Agrega la cookie JWT con las claims del usuario autenticado."""
    usuario = response['data']
    access_token = create_access_token(
        identity=str(usuario['id']),
        additional_claims={
            'usuario': usuario.get('usuario'),
            'rol': usuario.get('rol'),
            'areadetrabajo': usuario.get('areadetrabajo'),
            'correo': usuario.get('correo'),
        }
    )
    resp = jsonify(response)
    unset_jwt_cookies(resp)
    set_access_cookies(resp, access_token)
    return resp, status


@auth_bp.route('/login', methods=['POST'])
def login():
    """Inicia sesión con usuario o correo y deja el token en cookie."""
    try:
        controller = AuthController()
        response, status = controller.autenticar(request.get_json(silent=True))
        if status != 200:
            return jsonify(response), status
        logger.info(f"El usuario '{response['data'].get('usuario')}' inició sesión.")
        return _respuesta_con_sesion(response, status)
    except Exception as e:
        logger.error(f"Error inesperado en login: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@auth_bp.route('/logout', methods=['POST'])
def logout():
    resp = jsonify({'success': True, 'message': 'Sesión cerrada.'})
    unset_jwt_cookies(resp)
    return resp, 200


@auth_bp.route('/registro', methods=['POST'])
def registro():
    try:
        controller = AuthController()
        response, status = controller.registrar(request.get_json(silent=True))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en registro: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@auth_bp.route('/verificar', methods=['POST'])
def verificar():
    """Confirma el código enviado al correo e inicia sesión con la cuenta nueva."""
    try:
        controller = AuthController()
        response, status = controller.verificar_codigo(request.get_json(silent=True))
        if status != 201:
            return jsonify(response), status
        return _respuesta_con_sesion(response, status)
    except Exception as e:
        logger.error(f"Error inesperado en verificar: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@auth_bp.route('/recuperar', methods=['POST'])
def recuperar():
    try:
        datos = request.get_json(silent=True) or {}
        response, status = AuthController().recuperar_contrasena(datos.get('correo'))
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en recuperar: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@auth_bp.route('/restablecer', methods=['POST'])
def restablecer():
    try:
        datos = request.get_json(silent=True) or {}
        response, status = AuthController().restablecer_contrasena(
            datos.get('correo'), datos.get('token'), datos.get('contrasena')
        )
        return jsonify(response), status
    except Exception as e:
        logger.error(f"Error inesperado en restablecer: {str(e)}")
        return jsonify({"success": False, "error": "Error interno del servidor"}), 500


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    return jsonify({'success': True, 'data': usuario_actual()}), 200


@auth_bp.route('/menu', methods=['GET'])
@jwt_required()
def menu():
    response, status = AuthController().menu(usuario_actual().get('rol'))
    return jsonify(response), status
