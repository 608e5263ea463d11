from functools import wraps
from flask import jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt
from portal.utils.roles import normalizar_rol
from portal.utils.permission_map import get_allowed_roles_for_action

def _forbidden(mensaje: str):
    return jsonify({'success': False, 'error': mensaje}), 403

def permission_required(accion: str, allowed_roles: list = None):
    """
    Decorador que verifica si el rol de un usuario tiene permiso para una acción específica.
    Obtiene el rol desde el token JWT.
    """
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            claims = get_jwt()
            user_role_code = normalizar_rol(claims.get('rol'))

            if current_app.config.get('BYPASS_PERMISSIONS', False):
                return f(*args, **kwargs)

            if allowed_roles and user_role_code in allowed_roles:
                return f(*args, **kwargs)

            if user_role_code not in get_allowed_roles_for_action(accion):
                return _forbidden(f'No tiene los permisos necesarios ({accion}) para esta operación.')

            return f(*args, **kwargs)
        return decorated_function
    return decorator

def permission_any_of(*actions):
    """
    Decorador que verifica si el rol del usuario tiene al menos UNO de los permisos especificados.
    """
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            claims = get_jwt()
            user_role_code = normalizar_rol(claims.get('rol'))

            if current_app.config.get('BYPASS_PERMISSIONS', False):
                return f(*args, **kwargs)

            has_any_permission = any(user_role_code in get_allowed_roles_for_action(action) for action in actions)
            if not has_any_permission:
                return _forbidden('No tiene ninguno de los permisos requeridos para esta operación.')

            return f(*args, **kwargs)
        return decorated_function
    return decorator
