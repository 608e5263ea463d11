import logging
from typing import Dict, Optional

from flask import current_app

from portal.controllers.base_controller import BaseController
from portal.models.solicitud import SolicitudModel, AprobacionModel
from portal.schemas.solicitud_schema import SolicitudSchema, CalificacionSchema
from portal.utils import estados
from portal.utils.date_utils import get_now_local

logger = logging.getLogger(__name__)

# Estados que ve cada tablero
ESTADOS_COMPRAS = [
    estados.SOL_PENDIENTE, estados.SOL_FINALIZADA, estados.SOL_REVISION_COMPRAS,
    estados.SOL_REVISION_GERENCIA, estados.SOL_POR_COMPRAR, estados.SOL_CREACION_OC,
    estados.SOL_REVISION_GERENCIA_OC,
]
ESTADOS_GERENCIA = [
    estados.SOL_FINALIZADA, estados.SOL_REVISION_GERENCIA, estados.SOL_POR_COMPRAR,
    estados.SOL_CREACION_OC, estados.SOL_REVISION_GERENCIA_OC,
]

AVANCE_MANTENIMIENTO = {
    estados.SOL_PENDIENTE: estados.SOL_EN_PROCESO,
    estados.SOL_EN_PROCESO: estados.SOL_FINALIZADA,
}

# Gerencia aprueba en dos momentos: la solicitud y luego la orden de compra
APROBACION_GERENCIA = {
    estados.SOL_REVISION_GERENCIA: estados.SOL_CREACION_OC,
    estados.SOL_REVISION_GERENCIA_OC: estados.SOL_POR_COMPRAR,
}


def _texto(valor: Optional[str]) -> str:
    return (valor or '').strip()


class SolicitudController(BaseController):
    """
    Tickets de solicitudes entre áreas: creación y calificación por el
    solicitante, atención de mantenimiento, asignación de consecutivo por
    Gestión de Calidad y el circuito de compras con aprobación de Gerencia.
    """

    def __init__(self):
        super().__init__()
        self.model = SolicitudModel()
        self.aprobacion_model = AprobacionModel()
        self.schema = SolicitudSchema()

    @property
    def area_mantenimiento(self) -> int:
        return current_app.config.get('AREA_MANTENIMIENTO_ID', 1)

    @property
    def area_compras(self) -> int:
        return current_app.config.get('AREA_COMPRAS_ID', 4)

    # -------------------------------------------------------------------------
    # Utilidades internas
    # -------------------------------------------------------------------------

    def _cargar(self, solicitud_id: int):
        result = self.model.find_by_id(solicitud_id)
        if not result.get('success') or not result.get('data'):
            return None, self.error_response('Solicitud no encontrada', 404)
        return result['data'], None

    def _verificar_estado(self, solicitud: Dict, permitidos, accion: str):
        actual = solicitud.get('estado_id')
        if actual not in permitidos:
            nombres = ', '.join(estados.nombre_estado_solicitud(e) for e in permitidos)
            return self.error_response(
                f"No se puede {accion}: la solicitud está en '{estados.nombre_estado_solicitud(actual)}' "
                f"(se requiere {nombres}).", 409)
        return None

    def _actualizar(self, solicitud_id: int, cambios: Dict, mensaje: str) -> tuple:
        result = self.model.update(solicitud_id, cambios)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'], mensaje)

    def _registrar_aprobacion(self, solicitud_id: int, usuario: Dict, estado_aprobacion: str,
                              comentario_compras: Optional[str] = None,
                              comentario_gerencia: Optional[str] = None) -> None:
        payload = {
            'aprobador_id': (usuario or {}).get('usuario'),
            'fecha_aprobacion': get_now_local().isoformat(),
            'estado_aprobacion': estado_aprobacion,
            'comentario_compras': comentario_compras,
            'comentario_gerencia': comentario_gerencia,
        }
        result = self.aprobacion_model.upsert_por_solicitud(solicitud_id, payload)
        if not result.get('success'):
            logger.error(f"No se pudo registrar la aprobación de la solicitud {solicitud_id}: {result.get('error')}")

    def _listar(self, filters: Dict) -> tuple:
        result = self.model.find_all_con_relaciones(filters)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    # -------------------------------------------------------------------------
    # Solicitante
    # -------------------------------------------------------------------------

    def crear_solicitud(self, data: Dict, usuario: Dict) -> tuple:
        """
        Registra una solicitud nueva con el siguiente consecutivo del área
        destino. El solicitante queda identificado por su nombre de usuario.
        """
        validos, error = self.validar(self.schema, data)
        if error:
            return error

        maximo = self.model.find_max_consecutivo(validos['area_id'])
        if not maximo.get('success'):
            return self.error_response(maximo.get('error'), 500)

        registro = {
            **validos,
            'consecutivo': maximo['data'] + 1,
            'estado_id': estados.SOL_PENDIENTE,
            'usuario_id': (usuario or {}).get('usuario'),
            'area_solicitante': (usuario or {}).get('areadetrabajo'),
            'created_at': get_now_local().isoformat(),
        }
        result = self.model.create(registro)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        logger.info(f"Solicitud #{registro['consecutivo']} creada en el área {validos['area_id']} "
                    f"por {registro['usuario_id']}")
        return self.success_response(result['data'], "Solicitud creada exitosamente.", 201)

    def mis_solicitudes(self, usuario: Dict) -> tuple:
        return self._listar({'usuario_id': (usuario or {}).get('usuario')})

    def calificar(self, solicitud_id: int, data: Dict, usuario: Optional[Dict] = None) -> tuple:
        validos, error = self.validar(CalificacionSchema(), data)
        if error:
            return error

        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        if usuario and solicitud.get('usuario_id') and solicitud['usuario_id'] != usuario.get('usuario'):
            return self.error_response("Solo el solicitante puede calificar esta solicitud.", 403)
        error = self._verificar_estado(solicitud, [estados.SOL_FINALIZADA], 'calificar')
        if error:
            return error

        return self._actualizar(solicitud_id, {
            'calificacion': validos['calificacion'].strip(),
            'comentario': validos.get('comentario'),
            'estado_id': estados.SOL_CALIFICADA,
        }, "Gracias por calificar el servicio.")

    # -------------------------------------------------------------------------
    # Mantenimiento
    # -------------------------------------------------------------------------

    def solicitudes_mantenimiento(self) -> tuple:
        return self._listar({'area_id': self.area_mantenimiento})

    def avanzar_mantenimiento(self, solicitud_id: int, accion_realizada: Optional[str] = None) -> tuple:
        """Pendiente -> En proceso -> Finalizada. Cerrar exige describir la acción realizada."""
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        if solicitud.get('area_id') != self.area_mantenimiento:
            return self.error_response("La solicitud no pertenece a Mantenimiento.", 400)

        siguiente = AVANCE_MANTENIMIENTO.get(solicitud.get('estado_id'))
        if siguiente is None:
            return self.error_response(
                f"La solicitud ya no puede avanzar desde "
                f"'{estados.nombre_estado_solicitud(solicitud.get('estado_id'))}'.", 409)

        cambios = {'estado_id': siguiente}
        if siguiente == estados.SOL_FINALIZADA:
            accion = _texto(accion_realizada)
            if not accion:
                return self.error_response("Debe indicar la acción realizada para finalizar.", 400)
            cambios['accion_realizada'] = accion
            cambios['fecha_cierre'] = get_now_local().isoformat()

        return self._actualizar(solicitud_id, cambios,
                                f"Solicitud en estado '{estados.nombre_estado_solicitud(siguiente)}'.")

    # -------------------------------------------------------------------------
    # Gestión de Calidad
    # -------------------------------------------------------------------------

    def pendientes_consecutivo(self) -> tuple:
        return self._listar({'area_id': self.area_compras, 'estado_id': estados.SOL_PENDIENTE})

    def historial_consecutivos(self) -> tuple:
        result = self.model.find_all_con_relaciones({'area_id': self.area_compras})
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response([s for s in result['data'] if s.get('consecutivo') is not None])

    def asignar_consecutivo(self, solicitud_id: int) -> tuple:
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, [estados.SOL_PENDIENTE], 'asignar consecutivo')
        if error:
            return error

        maximo = self.model.find_max_consecutivo(solicitud.get('area_id'))
        if not maximo.get('success'):
            return self.error_response(maximo.get('error'), 500)
        consecutivo = maximo['data'] + 1

        return self._actualizar(solicitud_id, {
            'consecutivo': consecutivo,
            'estado_id': estados.SOL_REVISION_COMPRAS,
            'accion_realizada': f"Consecutivo asignado: {consecutivo}",
        }, f"Consecutivo {consecutivo} asignado. La solicitud pasa a revisión de Compras.")

    # -------------------------------------------------------------------------
    # Compras
    # -------------------------------------------------------------------------

    def solicitudes_compras(self) -> tuple:
        return self._listar({'area_id': self.area_compras, 'estado_id': ESTADOS_COMPRAS})

    def enviar_gerencia(self, solicitud_id: int, usuario: Dict, comentario: Optional[str] = None) -> tuple:
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, [estados.SOL_PENDIENTE, estados.SOL_REVISION_COMPRAS],
                                       'enviar a Gerencia')
        if error:
            return error

        respuesta = self._actualizar(solicitud_id, {'estado_id': estados.SOL_REVISION_GERENCIA},
                                     "Solicitud enviada a revisión de Gerencia.")
        if respuesta[1] == 200:
            self._registrar_aprobacion(solicitud_id, usuario, None, comentario_compras=_texto(comentario) or None)
        return respuesta

    def solicitar_correccion(self, solicitud_id: int, usuario: Dict, comentario: Optional[str]) -> tuple:
        comentario = _texto(comentario)
        if not comentario:
            return self.error_response("Debe indicar qué se debe corregir.", 400)
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, [estados.SOL_REVISION_COMPRAS], 'devolver para corrección')
        if error:
            return error

        respuesta = self._actualizar(solicitud_id, {'estado_id': estados.SOL_DEVUELTA},
                                     "Solicitud devuelta al solicitante para corrección.")
        if respuesta[1] == 200:
            self._registrar_aprobacion(solicitud_id, usuario, estados.APROBACION_DEVUELTO,
                                       comentario_compras=comentario)
        return respuesta

    def enviar_orden_revision(self, solicitud_id: int, usuario: Dict, detalle: Optional[str]) -> tuple:
        detalle = _texto(detalle)
        if not detalle:
            return self.error_response("Debe indicar el detalle de la orden de compra.", 400)
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, [estados.SOL_CREACION_OC], 'enviar la orden a revisión')
        if error:
            return error

        respuesta = self._actualizar(solicitud_id, {'estado_id': estados.SOL_REVISION_GERENCIA_OC},
                                     "Orden de compra enviada a revisión de Gerencia.")
        if respuesta[1] == 200:
            self._registrar_aprobacion(solicitud_id, usuario, None,
                                       comentario_compras=f"Orden Generada: {detalle}")
        return respuesta

    def ejecutar_compra(self, solicitud_id: int, usuario: Dict, detalle: Optional[str]) -> tuple:
        detalle = _texto(detalle)
        if not detalle:
            return self.error_response("Debe indicar el detalle de la compra realizada.", 400)
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, [estados.SOL_POR_COMPRAR], 'registrar la compra')
        if error:
            return error

        respuesta = self._actualizar(solicitud_id, {
            'estado_id': estados.SOL_FINALIZADA,
            'accion_realizada': detalle,
            'fecha_cierre': get_now_local().isoformat(),
        }, "Compra ejecutada. Solicitud finalizada.")
        if respuesta[1] == 200:
            self._registrar_aprobacion(solicitud_id, usuario, estados.APROBACION_APROBADO,
                                       comentario_compras=detalle)
        return respuesta

    # -------------------------------------------------------------------------
    # Gerencia
    # -------------------------------------------------------------------------

    def solicitudes_gerencia(self) -> tuple:
        return self._listar({'area_id': self.area_compras, 'estado_id': ESTADOS_GERENCIA})

    def aprobar(self, solicitud_id: int, usuario: Dict, comentario: Optional[str] = None) -> tuple:
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, list(APROBACION_GERENCIA), 'aprobar')
        if error:
            return error

        siguiente = APROBACION_GERENCIA[solicitud['estado_id']]
        mensaje = ("Solicitud aprobada. Compras debe generar la orden de compra."
                   if siguiente == estados.SOL_CREACION_OC
                   else "Orden de compra aprobada. Compras puede ejecutar la compra.")
        respuesta = self._actualizar(solicitud_id, {'estado_id': siguiente}, mensaje)
        if respuesta[1] == 200:
            self._registrar_aprobacion(solicitud_id, usuario, estados.APROBACION_APROBADO,
                                       comentario_gerencia=_texto(comentario) or None)
        return respuesta

    def rechazar(self, solicitud_id: int, usuario: Dict, comentario: Optional[str]) -> tuple:
        comentario = _texto(comentario)
        if not comentario:
            return self.error_response("Debe indicar el motivo del rechazo.", 400)
        solicitud, error = self._cargar(solicitud_id)
        if error:
            return error
        error = self._verificar_estado(solicitud, list(APROBACION_GERENCIA), 'rechazar')
        if error:
            return error

        respuesta = self._actualizar(solicitud_id, {'estado_id': estados.SOL_REVISION_COMPRAS},
                                     "Solicitud rechazada. Vuelve a revisión de Compras.")
        if respuesta[1] == 200:
            self._registrar_aprobacion(solicitud_id, usuario, estados.APROBACION_RECHAZADO,
                                       comentario_gerencia=comentario)
        return respuesta

    # -------------------------------------------------------------------------
    # KPIs
    # -------------------------------------------------------------------------

    def _conteo(self, area_id: int):
        result = self.model.count_por_estado(area_id)
        if not result.get('success'):
            return None, self.error_response(result.get('error'), 500)
        return result['data'], None

    def kpis_compras(self) -> tuple:
        conteo, error = self._conteo(self.area_compras)
        if error:
            return error
        return self.success_response({
            'total': sum(conteo.values()),
            'pendientes': conteo.get(estados.SOL_PENDIENTE, 0),
            'revision_compras': conteo.get(estados.SOL_REVISION_COMPRAS, 0),
            'revision_gerencia': conteo.get(estados.SOL_REVISION_GERENCIA, 0)
                                 + conteo.get(estados.SOL_REVISION_GERENCIA_OC, 0),
            'creacion_oc': conteo.get(estados.SOL_CREACION_OC, 0),
            'por_comprar': conteo.get(estados.SOL_POR_COMPRAR, 0),
            'devueltas': conteo.get(estados.SOL_DEVUELTA, 0),
            'finalizadas': conteo.get(estados.SOL_FINALIZADA, 0) + conteo.get(estados.SOL_CALIFICADA, 0),
        })

    def kpis_mantenimiento(self) -> tuple:
        conteo, error = self._conteo(self.area_mantenimiento)
        if error:
            return error
        return self.success_response({
            'total': sum(conteo.values()),
            'pendientes': conteo.get(estados.SOL_PENDIENTE, 0),
            'en_proceso': conteo.get(estados.SOL_EN_PROCESO, 0),
            'finalizadas': conteo.get(estados.SOL_FINALIZADA, 0) + conteo.get(estados.SOL_CALIFICADA, 0),
        })
