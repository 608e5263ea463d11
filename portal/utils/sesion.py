from flask_jwt_extended import get_current_user

def usuario_actual() -> dict:
    """
    Usuario autenticado como diccionario (id, usuario, rol, areadetrabajo,
    correo), reconstruido desde las claims del token. Vacío si no hay sesión.
    """
    user = get_current_user()
    if user is None:
        return {}
    return dict(vars(user))
