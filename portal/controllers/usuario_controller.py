import logging
from typing import Dict, Optional

from werkzeug.security import generate_password_hash, check_password_hash

from portal.controllers.base_controller import BaseController
from portal.database import Database
from portal.models.usuario import UsuarioModel
from portal.schemas.usuario_schema import LoginSchema, RegistroSchema, VerificacionSchema, UsuarioSchema
from portal.utils.roles import ROL_USUARIO, menu_para_rol, normalizar_rol

logger = logging.getLogger(__name__)

AREA_SOLICITANTE = 'Solicitante'
MARCA_SUPABASE_AUTH = 'SUPABASE_AUTH'


def _atributo(objeto, nombre):
    if objeto is None:
        return None
    if isinstance(objeto, dict):
        return objeto.get(nombre)
    return getattr(objeto, nombre, None)


def datos_sesion(fila: Dict) -> Dict:
    """Campos del usuario que viajan en el token de sesión."""
    area = fila.get('areadetrabajo')
    return UsuarioSchema().dump({
        'id': fila.get('id'),
        'usuario': fila.get('usuario'),
        'rol': normalizar_rol(fila.get('rol')) or ROL_USUARIO,
        'areadetrabajo': area if area and area != 'NA' else None,
        'correo': fila.get('correo'),
    })


class AuthController(BaseController):
    """
    Autenticación contra la tabla `usuarios` y Supabase Auth.
    """

    def __init__(self):
        super().__init__()
        self.usuario_model = UsuarioModel()

    @property
    def auth(self):
        return Database().auth

    def _iniciar_con_correo(self, correo: str, contrasena: str):
        """Devuelve el usuario de Supabase Auth o None si las credenciales no son válidas."""
        try:
            respuesta = self.auth.sign_in_with_password({'email': correo, 'password': contrasena})
        except Exception as e:
            logger.info(f"Inicio de sesión por correo rechazado para {correo}: {e}")
            return None
        return _atributo(respuesta, 'user')

    def autenticar(self, data: Dict) -> tuple:
        """
        Acepta usuario o correo. Con correo se intenta Supabase Auth y se
        carga el perfil de `usuarios`; con nombre de usuario se valida el hash
        local y, si falla, se reintenta en Supabase Auth con el correo guardado.
        """
        validos, error = self.validar(LoginSchema(), data)
        if error:
            return error
        identificador = validos['usuario'].strip()
        contrasena = validos['contrasena']

        if '@' in identificador:
            usuario_auth = self._iniciar_con_correo(identificador, contrasena)
            if usuario_auth is not None:
                perfil = self.usuario_model.find_by_id(_atributo(usuario_auth, 'id'))
                if perfil.get('success') and perfil.get('data'):
                    return self.success_response(datos_sesion(perfil['data']), "Inicio de sesión exitoso.")

        perfil = self.usuario_model.find_by_usuario(identificador)
        if not perfil.get('success') or not perfil.get('data'):
            return self.error_response('Credenciales incorrectas.', 401)
        fila = perfil['data']

        hash_guardado = fila.get('contrasena') or ''
        if hash_guardado and hash_guardado != MARCA_SUPABASE_AUTH and check_password_hash(hash_guardado, contrasena):
            return self.success_response(datos_sesion(fila), "Inicio de sesión exitoso.")

        if fila.get('correo') and self._iniciar_con_correo(fila['correo'], contrasena) is not None:
            return self.success_response(datos_sesion(fila), "Inicio de sesión exitoso.")

        logger.warning(f"Intento de inicio de sesión fallido para '{identificador}'")
        return self.error_response('Credenciales incorrectas.', 401)

    def registrar(self, data: Dict) -> tuple:
        validos, error = self.validar(RegistroSchema(), data)
        if error:
            return error
        try:
            self.auth.sign_up({
                'email': validos['correo'],
                'password': validos['contrasena'],
                'options': {'data': {'display_name': validos['usuario'], 'rol': ROL_USUARIO}},
            })
        except Exception as e:
            logger.error(f"Error registrando {validos['correo']} en Supabase Auth: {e}", exc_info=True)
            return self.error_response(str(e), 400)
        return self.success_response({'correo': validos['correo']}, "Código enviado al correo.")

    def verificar_codigo(self, data: Dict) -> tuple:
        """
        Confirma el código de registro y crea el perfil en `usuarios` con el
        mismo id de Supabase Auth, rol `usuario` y área Solicitante.
        """
        validos, error = self.validar(VerificacionSchema(), data)
        if error:
            return error
        try:
            respuesta = self.auth.verify_otp({'email': validos['correo'], 'token': validos['token'], 'type': 'signup'})
        except Exception as e:
            logger.warning(f"Código de verificación inválido para {validos['correo']}: {e}")
            return self.error_response('Código inválido o vencido.', 400)

        usuario_auth = _atributo(respuesta, 'user') or _atributo(_atributo(respuesta, 'session'), 'user')
        if usuario_auth is None:
            return self.error_response('No se pudo confirmar el registro.', 400)

        fila = {
            'id': _atributo(usuario_auth, 'id'),
            'usuario': validos['usuario'],
            'correo': validos['correo'],
            'rol': ROL_USUARIO,
            'areadetrabajo': AREA_SOLICITANTE,
            'contrasena': generate_password_hash(validos['contrasena']) if validos.get('contrasena') else MARCA_SUPABASE_AUTH,
        }
        result = self.usuario_model.create(fila)
        if not result.get('success'):
            # El perfil puede existir por un intento previo; el inicio de sesión continúa.
            logger.error(f"Error guardando el perfil de {validos['usuario']}: {result.get('error')}")
        return self.success_response(datos_sesion(fila), "Cuenta verificada.", 201)

    def recuperar_contrasena(self, correo: Optional[str]) -> tuple:
        if not correo or '@' not in correo:
            return self.error_response('Correo electrónico inválido.', 400)
        try:
            self.auth.reset_password_for_email(correo)
        except Exception as e:
            logger.error(f"Error enviando código de recuperación a {correo}: {e}", exc_info=True)
            return self.error_response(str(e), 400)
        return self.success_response(None, "Código de recuperación enviado.")

    def restablecer_contrasena(self, correo: str, token: str, nueva_contrasena: str) -> tuple:
        if not nueva_contrasena or len(nueva_contrasena) < 6:
            return self.error_response('La contraseña debe tener al menos 6 caracteres.', 400)
        try:
            self.auth.verify_otp({'email': correo, 'token': token, 'type': 'recovery'})
            respuesta = self.auth.update_user({'password': nueva_contrasena})
        except Exception as e:
            logger.warning(f"No se pudo restablecer la contraseña de {correo}: {e}")
            return self.error_response('Código inválido o vencido.', 400)

        usuario_auth = _atributo(respuesta, 'user')
        if usuario_auth is not None:
            self.usuario_model.update(_atributo(usuario_auth, 'id'),
                                      {'contrasena': generate_password_hash(nueva_contrasena)})
        return self.success_response(None, "Contraseña actualizada.")

    def menu(self, rol: Optional[str]) -> tuple:
        return self.success_response(menu_para_rol(rol))
