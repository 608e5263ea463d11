import logging
from typing import Dict, List, Optional

from portal.controllers.base_controller import BaseController
from portal.controllers.notificacion_controller import (
    NotificacionController, TIPO_ACCION_REQUERIDA, TIPO_URGENTE, TIPO_PROCESO_COMPLETADO
)
from portal.controllers.observacion_controller import ObservacionController
from portal.models.pedido import PedidoModel
from portal.models.pedido_etapa import PedidoEtapaModel, EtapaLiberacionModel
from portal.models.flujo_forma import FlujoFormaModel, FlujoFormaEtapaModel
from portal.schemas.etapa_schema import LiberacionEtapaSchema, RechazoEtapaSchema
from portal.utils import estados
from portal.utils.roles import (
    normalizar_rol, rol_coincide, ROL_MICROBIOLOGIA, ROL_CONTROL_CALIDAD
)
from portal.utils.date_utils import get_now_local

logger = logging.getLogger(__name__)

# Alertas de muestreo según el nombre de la etapa que se cierra.
ALERTAS_ESTERIL = [
    ('formulación', ['microbiologia'], "Toma de Biocarga (Pre-filtración)",
     "Pedido #{id} (Estéril): Formulación lista. Favor tomar biocarga pre-filtración.", TIPO_URGENTE),
    ('filtración', ['microbiologia'], "Toma de Biocarga (Post-filtración)",
     "Pedido #{id} (Estéril): Filtración finalizada. Favor tomar biocarga post-filtración.", TIPO_URGENTE),
    ('esterilización', ['microbiologia'], "Muestreo Microbiológico (Esterilidad)",
     "Pedido #{id} (Estéril): Esterilización finalizada. Favor realizar muestreo de esterilidad.", TIPO_URGENTE),
]
ALERTAS_NO_ESTERIL = [
    ('envasado', ['controlcalidad', 'microbiologia'], "Muestreo FQ y MB (Envasado)",
     "Pedido #{id}: Envasado finalizado. Favor tomar muestras para análisis FQ y MB.", TIPO_ACCION_REQUERIDA),
]

_AREA_POR_ROL = {
    ROL_MICROBIOLOGIA: ('MB', 'Microbiología'),
    ROL_CONTROL_CALIDAD: ('CC', 'Calidad'),
}


def es_forma_esteril(forma: Optional[str]) -> bool:
    forma = (forma or '').lower()
    return 'esteril' in forma or 'estéril' in forma


def etapa_actual(etapas: List[Dict]) -> Optional[Dict]:
    """Etapa de menor orden que aún no está completada."""
    pendientes = [e for e in etapas if e.get('estado') != estados.ETAPA_COMPLETADA]
    if not pendientes:
        return None
    return min(pendientes, key=lambda e: e.get('orden') or 0)


def flujo_completo(etapas: List[Dict]) -> bool:
    """Un flujo está completo si tiene al menos una etapa y todas están completadas."""
    return bool(etapas) and all(e.get('estado') == estados.ETAPA_COMPLETADA for e in etapas)


class EtapaController(BaseController):
    """
    Etapas internas de un pedido: instanciación desde la plantilla de su
    forma farmacéutica, avance por Producción y liberación o rechazo por
    los roles liberadores (Control de Calidad, Microbiología).
    """

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.etapa_model = PedidoEtapaModel()
        self.liberacion_model = EtapaLiberacionModel()
        self.flujo_model = FlujoFormaModel()
        self.flujo_etapa_model = FlujoFormaEtapaModel()
        self.notificacion_controller = NotificacionController()
        self.observacion_controller = ObservacionController()

    # -------------------------------------------------------------------------
    # Instanciación
    # -------------------------------------------------------------------------

    def instanciar_etapas(self, pedido: Dict, forma_manual: Optional[str] = None) -> Dict:
        """
        Crea las etapas del pedido a partir del flujo activo de su forma
        farmacéutica. Si el pedido ya tiene etapas no crea nada.
        La forma manual, si se indica, reemplaza la del producto.
        """
        pedido_id = pedido['id']

        existe = self.etapa_model.existe_para_pedido(pedido_id)
        if not existe.get('success'):
            return existe
        if existe['data']:
            logger.info(f"El pedido {pedido_id} ya tiene etapas; no se instancian de nuevo.")
            return {'success': True, 'data': {'created': False}}

        forma = (forma_manual or '').strip() or ((pedido.get('productos') or {}).get('forma_farmaceutica') or '').strip()
        if not forma:
            return {'success': False, 'error': 'El producto no tiene forma farmacéutica y no se seleccionó ninguna manualmente.'}

        flujo_result = self.flujo_model.find_activo_por_forma(forma)
        if not flujo_result.get('success'):
            return flujo_result
        flujo = flujo_result['data']

        catalogo_result = self.flujo_etapa_model.find_by_flujo(flujo['id'])
        if not catalogo_result.get('success'):
            return catalogo_result
        catalogo = catalogo_result['data']
        if not catalogo:
            return {'success': False, 'error': f"El flujo {flujo['id']} no tiene etapas configuradas."}

        ahora = get_now_local().isoformat()
        filas = []
        for indice, paso in enumerate(catalogo):
            requiere = bool(paso.get('requiere_liberacion'))
            es_primera = indice == 0
            estado = estados.ETAPA_PENDIENTE
            if es_primera and requiere:
                estado = estados.ETAPA_PENDIENTE_LIBERACION
            filas.append({
                'pedido_id': pedido_id,
                'flujo_id': flujo['id'],
                'orden': paso.get('orden'),
                'nombre': paso.get('nombre'),
                'requiere_liberacion': requiere,
                'rol_liberador': paso.get('rol_liberador') if requiere else None,
                'estado': estado,
                'fecha_inicio': ahora if es_primera else None,
            })

        insert_result = self.etapa_model.create_many(filas)
        if not insert_result.get('success'):
            return insert_result

        liberaciones = []
        for etapa in insert_result['data']:
            if not etapa.get('requiere_liberacion'):
                continue
            for rol in (etapa.get('rol_liberador') or '').split(','):
                rol = rol.strip()
                if rol:
                    liberaciones.append({
                        'pedido_etapa_id': etapa['id'],
                        'rol': rol,
                        'liberada': False,
                        'usuario_id': None,
                        'comentario': '',
                    })

        lib_result = self.liberacion_model.create_many(liberaciones)
        if not lib_result.get('success'):
            return lib_result

        logger.info(f"Pedido {pedido_id}: {len(filas)} etapas y {len(liberaciones)} liberaciones creadas (flujo {flujo['id']}).")
        return {'success': True, 'data': {'created': True, 'flujo_id': flujo['id'], 'etapas': len(filas)}}

    # -------------------------------------------------------------------------
    # Consultas
    # -------------------------------------------------------------------------

    def _etapas_con_liberaciones(self, pedido_id: int) -> Dict:
        etapas_result = self.etapa_model.find_by_pedido(pedido_id)
        if not etapas_result.get('success'):
            return etapas_result
        etapas = etapas_result['data']
        libs_result = self.liberacion_model.find_by_etapas([e['id'] for e in etapas])
        if not libs_result.get('success'):
            return libs_result
        por_etapa = {}
        for lib in libs_result['data']:
            por_etapa.setdefault(lib['pedido_etapa_id'], []).append(lib)
        for etapa in etapas:
            etapa['liberaciones'] = por_etapa.get(etapa['id'], [])
        return {'success': True, 'data': etapas}

    def obtener_etapas(self, pedido_id: int) -> tuple:
        result = self._etapas_con_liberaciones(pedido_id)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        etapas = result['data']
        actual = etapa_actual(etapas)
        return self.success_response({
            'etapas': etapas,
            'etapa_actual': actual,
            'flujo_completo': flujo_completo(etapas),
        })

    def estado_flujo(self, pedido_id: int) -> Dict:
        """Resumen interno del flujo: existen etapas y si están todas completadas."""
        result = self.etapa_model.find_by_pedido(pedido_id)
        if not result.get('success'):
            return result
        etapas = result['data']
        return {'success': True, 'data': {'tiene_etapas': bool(etapas), 'completo': flujo_completo(etapas), 'etapas': etapas}}

    def etapas_activas(self, pedido_ids: List[int]) -> Dict:
        """Nombre de la etapa en curso de cada pedido (None si no tiene o ya terminó)."""
        result = self.etapa_model.find_by_pedidos(pedido_ids)
        if not result.get('success'):
            return result
        agrupadas = {}
        for etapa in result['data']:
            agrupadas.setdefault(etapa['pedido_id'], []).append(etapa)
        activas = {}
        for pedido_id in pedido_ids:
            actual = etapa_actual(agrupadas.get(pedido_id, []))
            activas[pedido_id] = actual.get('nombre') if actual else None
        return {'success': True, 'data': activas}

    def etapas_pendientes_por_rol(self, rol: str) -> tuple:
        """Etapas en revisión con una liberación pendiente para el rol dado."""
        result = self.etapa_model.find_en_revision_con_pedido()
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        pendientes = []
        for etapa in result['data']:
            libs = etapa.get('pedido_etapas_liberaciones') or []
            if any(rol_coincide(rol, l.get('rol')) and not l.get('liberada') for l in libs):
                pendientes.append(etapa)
        return self.success_response(pendientes)

    # -------------------------------------------------------------------------
    # Avance por Producción
    # -------------------------------------------------------------------------

    def avanzar_etapa(self, pedido_id: int, usuario: Optional[str] = None) -> tuple:
        """
        Avanza la etapa en curso del pedido. Si requiere liberación pasa a
        revisión y se avisa a los roles liberadores; si no, se completa.
        """
        pedido_result = self.pedido_model.find_by_id_con_relaciones(pedido_id)
        if not pedido_result.get('success'):
            return self.error_response(pedido_result.get('error', 'Pedido no encontrado'), 404)
        pedido = pedido_result['data']
        if pedido.get('estado_id') != estados.PEDIDO_ETAPAS_INTERNAS:
            return self.error_response("Las etapas internas solo se avanzan con el pedido en 'Etapas internas'.", 409)

        etapas_result = self.etapa_model.find_by_pedido(pedido_id)
        if not etapas_result.get('success'):
            return self.error_response(etapas_result.get('error'), 500)
        actual = etapa_actual(etapas_result['data'])
        if actual is None:
            return self.error_response("El pedido no tiene etapas pendientes.", 409)

        if actual.get('estado') == estados.ETAPA_EN_REVISION:
            return self.error_response("Esta etapa está en revisión. Debe liberarla el área correspondiente.", 409)

        ahora = get_now_local().isoformat()
        if actual.get('requiere_liberacion'):
            update = self.etapa_model.update(actual['id'], {
                'estado': estados.ETAPA_EN_REVISION,
                'fecha_inicio': actual.get('fecha_inicio') or ahora,
            })
            if not update.get('success'):
                return self.error_response(update.get('error'), 500)

            self.liberacion_model.reiniciar_por_etapa(actual['id'])
            self._notificar_liberadores(pedido_id, actual)
            mensaje = f"Etapa '{actual['nombre']}' enviada a revisión."
        else:
            update = self.etapa_model.update(actual['id'], {
                'estado': estados.ETAPA_COMPLETADA,
                'fecha_inicio': actual.get('fecha_inicio') or ahora,
                'fecha_fin': ahora,
            })
            if not update.get('success'):
                return self.error_response(update.get('error'), 500)
            mensaje = f"Etapa '{actual['nombre']}' completada."

        self._alertas_muestreo(pedido, actual)
        completo = self.notificacion_controller.verificar_flujo_completo_y_notificar(pedido_id)

        return self.success_response({'etapa': update['data'], 'flujo_completo': completo}, mensaje)

    def _notificar_liberadores(self, pedido_id: int, etapa: Dict):
        destinatarios = []
        for rol in (etapa.get('rol_liberador') or '').lower().split(','):
            if 'micro' in rol and 'microbiologia' not in destinatarios:
                destinatarios.append('microbiologia')
            if 'calidad' in rol and 'controlcalidad' not in destinatarios:
                destinatarios.append('controlcalidad')
        if not destinatarios:
            return
        self.notificacion_controller.notificar_roles(
            destinatarios,
            "Nueva etapa pendiente de liberar",
            f"El Pedido #{pedido_id} requiere liberar la etapa: \"{etapa['nombre']}\".",
            pedido_id,
            TIPO_ACCION_REQUERIDA
        )

    def _alertas_muestreo(self, pedido: Dict, etapa: Dict):
        nombre = (etapa.get('nombre') or '').lower()
        forma = (pedido.get('productos') or {}).get('forma_farmaceutica')
        reglas = ALERTAS_ESTERIL if es_forma_esteril(forma) else ALERTAS_NO_ESTERIL
        for clave, roles, titulo, plantilla, tipo in reglas:
            if clave in nombre:
                self.notificacion_controller.notificar_roles(
                    roles, titulo, plantilla.format(id=pedido['id']), pedido['id'], tipo
                )

    # -------------------------------------------------------------------------
    # Liberación y rechazo
    # -------------------------------------------------------------------------

    def _cargar_etapa_para_rol(self, etapa_id: int, rol: str):
        etapa_result = self.etapa_model.find_by_id(etapa_id)
        if not etapa_result.get('success'):
            return None, None, self.error_response('Etapa no encontrada', 404)
        etapa = etapa_result['data']

        libs_result = self.liberacion_model.find_by_etapa(etapa_id)
        if not libs_result.get('success'):
            return None, None, self.error_response(libs_result.get('error'), 500)

        propias = [l for l in libs_result['data'] if rol_coincide(rol, l.get('rol'))]
        if not propias:
            return None, None, self.error_response(
                f"El rol '{rol}' no tiene una liberación asignada en la etapa '{etapa.get('nombre')}'.", 403)

        if etapa.get('estado') != estados.ETAPA_EN_REVISION:
            return None, None, self.error_response("La etapa no está en revisión.", 409)

        return etapa, propias, None

    def liberar_etapa(self, etapa_id: int, rol: str, usuario: Dict, data: Optional[Dict] = None) -> tuple:
        """
        Marca como liberadas las filas de liberación del rol. Cuando todas las
        liberaciones de la etapa están firmadas, la etapa queda completada.
        """
        datos, error = self.validar(LiberacionEtapaSchema(), data)
        if error:
            return error

        etapa, propias, error = self._cargar_etapa_para_rol(etapa_id, rol)
        if error:
            return error

        nombre_usuario = usuario.get('usuario')
        comentario = (datos.get('comentario') or '').strip()
        cambios = {
            'liberada': True,
            'usuario_id': usuario.get('id'),
            'comentario': comentario or f"Liberado por {nombre_usuario}",
        }
        if datos.get('numero_analisis'):
            cambios['numero_analisis'] = datos['numero_analisis']
        if datos.get('responsable_manual'):
            cambios['responsable_manual'] = datos['responsable_manual']

        for lib in propias:
            result = self.liberacion_model.update(lib['id'], cambios)
            if not result.get('success'):
                return self.error_response(result.get('error'), 500)

        todas = self.liberacion_model.find_by_etapa(etapa_id)
        etapa_completada = False
        if todas.get('success') and todas['data'] and all(l.get('liberada') for l in todas['data']):
            completar = self.etapa_model.update(etapa_id, {
                'estado': estados.ETAPA_COMPLETADA,
                'fecha_fin': get_now_local().isoformat(),
            })
            if not completar.get('success'):
                return self.error_response(completar.get('error'), 500)
            etapa_completada = True

        pedido_id = etapa['pedido_id']
        sigla, area = _AREA_POR_ROL.get(normalizar_rol(rol), ('', 'El área liberadora'))
        if comentario:
            self.observacion_controller.registrar(
                pedido_id, nombre_usuario or area, f"✅ ETAPA LIBERADA ({etapa['nombre']}): {comentario}"
            )
        self.notificacion_controller.notificar_roles(
            ['produccion'],
            f"Etapa Liberada ({sigla})" if sigla else "Etapa Liberada",
            f"{area} ha liberado la etapa \"{etapa['nombre']}\" del pedido #{pedido_id}.",
            pedido_id,
            TIPO_PROCESO_COMPLETADO
        )
        completo = self.notificacion_controller.verificar_flujo_completo_y_notificar(pedido_id)

        return self.success_response(
            {'etapa_id': etapa_id, 'etapa_completada': etapa_completada, 'flujo_completo': completo},
            "Etapa liberada."
        )

    def rechazar_etapa(self, etapa_id: int, rol: str, usuario: Dict, data: Optional[Dict] = None) -> tuple:
        """Rechaza la etapa: vuelve a pendiente y Producción debe rehacerla."""
        datos, error = self.validar(RechazoEtapaSchema(), data)
        if error:
            return error
        comentario = datos['comentario'].strip()
        if not comentario:
            return self.error_response("Debe indicar el motivo del rechazo.", 400)

        etapa, propias, error = self._cargar_etapa_para_rol(etapa_id, rol)
        if error:
            return error

        for lib in propias:
            result = self.liberacion_model.update(lib['id'], {
                'liberada': False,
                'usuario_id': usuario.get('id'),
                'comentario': comentario,
            }, keep_none=True)
            if not result.get('success'):
                return self.error_response(result.get('error'), 500)

        result = self.etapa_model.update(etapa_id, {'estado': estados.ETAPA_PENDIENTE})
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        pedido_id = etapa['pedido_id']
        sigla, area = _AREA_POR_ROL.get(normalizar_rol(rol), ('', 'El área liberadora'))
        self.observacion_controller.registrar(
            pedido_id, usuario.get('usuario') or area, f"❌ ETAPA RECHAZADA ({etapa['nombre']}): {comentario}"
        )
        self.notificacion_controller.notificar_roles(
            ['produccion'],
            f"Etapa Rechazada ({sigla})" if sigla else "Etapa Rechazada",
            f"{area} ha RECHAZADO la etapa \"{etapa['nombre']}\" del pedido #{pedido_id}. Motivo: {comentario[:50]}...",
            pedido_id,
            TIPO_URGENTE
        )
        return self.success_response({'etapa_id': etapa_id}, "Etapa rechazada y devuelta a Producción.")
