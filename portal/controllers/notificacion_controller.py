import logging
from typing import Dict, List, Optional
from flask import current_app

from portal.controllers.base_controller import BaseController
from portal.models.notificacion import NotificacionModel
from portal.models.usuario import UsuarioModel
from portal.models.pedido_etapa import PedidoEtapaModel
from portal.utils import estados
from portal.utils.roles import variantes_rol

logger = logging.getLogger(__name__)

TIPO_INFO = 'info'
TIPO_INFORMACION = 'informacion'
TIPO_ACCION_REQUERIDA = 'accion_requerida'
TIPO_URGENTE = 'urgente'
TIPO_PROCESO_COMPLETADO = 'proceso_completado'


class NotificacionController(BaseController):
    """
    Entrega de notificaciones a usuarios y roles, y consulta de la bandeja
    personal. El envío es de mejor esfuerzo: los errores se registran en el
    log y nunca interrumpen la operación que originó el aviso.
    """

    def __init__(self):
        super().__init__()
        self.model = NotificacionModel()
        self.usuario_model = UsuarioModel()
        self.etapa_model = PedidoEtapaModel()

    def notificar_usuario(self, user_id, titulo: str, mensaje: str, pedido_id: Optional[int] = None,
                          tipo: str = TIPO_INFO) -> bool:
        result = self.model.create({
            'user_id': user_id,
            'titulo': titulo,
            'mensaje': mensaje,
            'pedido_id': pedido_id,
            'tipo': tipo,
            'leida': False,
        })
        if not result.get('success'):
            logger.error(f"Error enviando notificación al usuario {user_id}: {result.get('error')}")
            return False
        return True

    def notificar_roles(self, roles: List[str], titulo: str, mensaje: str, pedido_id: Optional[int] = None,
                        tipo: str = TIPO_INFO) -> Dict:
        """
        Envía la misma notificación a todos los usuarios con alguno de los roles.
        Devuelve {'sent': n} y, si algo falló, la clave 'error'.
        """
        variantes = []
        for rol in roles:
            for v in variantes_rol(rol):
                if v not in variantes:
                    variantes.append(v)

        usuarios_result = self.usuario_model.find_ids_por_roles(variantes)
        if not usuarios_result.get('success'):
            logger.error(f"Error buscando destinatarios para roles {roles}: {usuarios_result.get('error')}")
            return {'sent': 0, 'error': usuarios_result.get('error')}

        usuarios = usuarios_result.get('data') or []
        if not usuarios:
            logger.info(f"Sin destinatarios para la notificación '{titulo}' (roles: {roles})")
            return {'sent': 0}

        filas = [{
            'user_id': u['id'],
            'titulo': titulo,
            'mensaje': mensaje,
            'pedido_id': pedido_id,
            'tipo': tipo,
            'leida': False,
        } for u in usuarios]

        insert_result = self.model.create_many(filas)
        if not insert_result.get('success'):
            logger.error(f"Error insertando notificaciones '{titulo}': {insert_result.get('error')}")
            return {'sent': 0, 'error': insert_result.get('error')}

        return {'sent': len(filas)}

    def verificar_flujo_completo_y_notificar(self, pedido_id: int) -> bool:
        """
        Si todas las etapas internas del pedido están completadas, avisa a
        Producción que ya puede pasar a Acondicionamiento.
        """
        result = self.etapa_model.find_by_pedido(pedido_id)
        if not result.get('success'):
            logger.error(f"Error verificando flujo del pedido {pedido_id}: {result.get('error')}")
            return False

        etapas = result.get('data') or []
        if not etapas or not all(e.get('estado') == estados.ETAPA_COMPLETADA for e in etapas):
            return False

        self.notificar_roles(
            ['produccion'],
            "🚀 Flujo de Etapas Completo",
            f"Todas las etapas internas del Pedido #{pedido_id} han finalizado. Ya puede ingresar a Acondicionamiento.",
            pedido_id,
            TIPO_PROCESO_COMPLETADO
        )
        return True

    # -------------------------------------------------------------------------
    # Bandeja del usuario
    # -------------------------------------------------------------------------

    def listar(self, user_id, desde: Optional[str] = None) -> tuple:
        """
        Últimas notificaciones del usuario. Con `desde` devuelve solo las nuevas
        y, si las hay, indica al cliente que recargue tras unos segundos.
        """
        limite = current_app.config.get('NOTIFICACIONES_LIMITE', 20)
        result = self.model.find_by_usuario(user_id, limit=limite, desde=desde)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        notificaciones = result.get('data') or []
        conteo = self.model.count_no_leidas(user_id)
        no_leidas = conteo.get('data') if conteo.get('success') else sum(1 for n in notificaciones if not n.get('leida'))

        data = {
            'notificaciones': notificaciones,
            'no_leidas': no_leidas or 0,
            'poll_segundos': current_app.config.get('NOTIFICACIONES_POLL_SEGUNDOS', 60),
            'recargar_en_segundos': None,
        }
        if desde and notificaciones:
            data['recargar_en_segundos'] = current_app.config.get('NOTIFICACIONES_RECARGA_SEGUNDOS', 5)
        return self.success_response(data)

    def marcar_leida(self, notificacion_id: int, user_id) -> tuple:
        result = self.model.mark_as_read(notificacion_id, user_id)
        if not result.get('success'):
            return self.error_response(result.get('error'), 404)
        return self.success_response(message="Notificación marcada como leída.")

    def marcar_todas_leidas(self, user_id) -> tuple:
        result = self.model.mark_all_as_read(user_id)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response({'actualizadas': len(result.get('data') or [])},
                                     message="Notificaciones marcadas como leídas.")
