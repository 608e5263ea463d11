import logging
from typing import Dict, List, Optional

from portal.controllers.base_controller import BaseController
from portal.controllers.pedido_controller import TransicionPedidoMixin
from portal.controllers.notificacion_controller import NotificacionController, TIPO_PROCESO_COMPLETADO
from portal.controllers.observacion_controller import ObservacionController
from portal.controllers.etapa_controller import EtapaController, es_forma_esteril
from portal.models.pedido import PedidoModel
from portal.models.pedido_etapa import EtapaLiberacionModel
from portal.models.solicitud import SolicitudModel
from portal.models.catalogo import AreaModel, ResponsableLiberacionModel
from portal.schemas.etapa_schema import LiberacionPTSchema
from portal.utils import estados
from portal.utils.roles import ROL_CONTROL_CALIDAD, ROL_MICROBIOLOGIA, variantes_rol
from portal.utils.date_utils import get_now_local, parse_fecha

logger = logging.getLogger(__name__)

PALABRAS_MICRO = ('esterilización', 'inicial', 'muestreo', 'biocarga')


def evaluar_solicitudes_micro(pedido: Dict, solicitudes: List[Dict]) -> Dict:
    """
    Decide si el análisis microbiológico del pedido permite liberar el PT.
    Las solicitudes relevantes se eligen por palabra clave en la descripción;
    si ninguna coincide se toman todas las del pedido.
    """
    esteril = es_forma_esteril((pedido.get('productos') or {}).get('forma_farmaceutica'))
    palabra = 'esterilidad' if esteril else 'envasado'
    nombre = 'Esterilidad' if esteril else 'Envasado'

    propias = [s for s in solicitudes if str(s.get('consecutivo')) == str(pedido.get('id'))]
    relevantes = [
        s for s in propias
        if any(p in (s.get('descripcion') or '').lower() for p in (palabra,) + PALABRAS_MICRO)
    ]
    if propias and not relevantes:
        relevantes = propias

    if not relevantes:
        return {'liberado': False, 'mensaje': f"Falta solicitud de análisis de {nombre} en Microbiología."}
    if any(s.get('estado_id') != estados.SOL_LIBERADA_MB for s in relevantes):
        return {'liberado': False, 'mensaje': f"Análisis de {nombre} pendiente en Microbiología."}
    return {'liberado': True, 'mensaje': f"Análisis de {nombre} completado por Microbiología. Liberación permitida."}


def _historial_etapas(liberaciones: List[Dict]) -> List[Dict]:
    historial = []
    for lib in liberaciones:
        etapa = lib.get('pedido_etapas') or {}
        pedido = etapa.get('pedidos_produccion') or {}
        historial.append({
            'id': f"et-lib-{lib['id']}",
            'tipo': 'Etapa Intermedia',
            'pedido_id': etapa.get('pedido_id'),
            'articulo': (pedido.get('productos') or {}).get('articulo'),
            'cliente': (pedido.get('clientes') or {}).get('nombre'),
            'op': pedido.get('op'),
            'lote': pedido.get('lote'),
            'detalle': etapa.get('nombre'),
            'fecha': lib.get('created_at'),
        })
    return historial


def _ordenar_por_fecha(items: List[Dict]) -> List[Dict]:
    def clave(item):
        fecha = parse_fecha(item.get('fecha'))
        return fecha.replace(tzinfo=None) if fecha else parse_fecha('1900-01-01')
    return sorted(items, key=clave, reverse=True)


class _LiberadorBase(BaseController):
    """Comportamiento común de las áreas que liberan etapas internas."""

    ROL = None
    AREA_RESPONSABLES = None

    def __init__(self):
        super().__init__()
        self.etapa_controller = EtapaController()
        self.liberacion_model = EtapaLiberacionModel()
        self.responsable_model = ResponsableLiberacionModel()

    def etapas_pendientes(self) -> tuple:
        return self.etapa_controller.etapas_pendientes_por_rol(self.ROL)

    def liberar_etapa(self, etapa_id: int, usuario: Dict, data: Optional[Dict] = None) -> tuple:
        return self.etapa_controller.liberar_etapa(etapa_id, self.ROL, usuario, data)

    def rechazar_etapa(self, etapa_id: int, usuario: Dict, data: Optional[Dict] = None) -> tuple:
        return self.etapa_controller.rechazar_etapa(etapa_id, self.ROL, usuario, data)

    def responsables(self) -> tuple:
        result = self.responsable_model.find_activos_por_area(self.AREA_RESPONSABLES)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def _liberaciones_recientes(self, limit: int) -> List[Dict]:
        result = self.liberacion_model.find_liberadas_por_rol(variantes_rol(self.AREA_RESPONSABLES), limit)
        if not result.get('success'):
            logger.error(f"Error cargando historial de liberaciones ({self.ROL}): {result.get('error')}")
            return []
        return _historial_etapas(result['data'])


class CalidadController(_LiberadorBase, TransicionPedidoMixin):
    """Control de Calidad: liberación de etapas internas y del producto terminado."""

    ROL = ROL_CONTROL_CALIDAD
    AREA_RESPONSABLES = 'control_calidad'

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.solicitud_model = SolicitudModel()
        self.area_model = AreaModel()
        self.notificacion_controller = NotificacionController()
        self.observacion_controller = ObservacionController()

    def pedidos_para_liberacion_pt(self) -> tuple:
        result = self.pedido_model.find_all_con_relaciones(
            {'estado_id': estados.PEDIDO_LIBERACION_PT}, order_by='id'
        )
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def verificar_estado_micro(self, pedido: Dict) -> Dict:
        """Estado del análisis microbiológico exigido para liberar el PT del pedido."""
        area = self.area_model.find_por_nombre_parcial('micro')
        if not area.get('success'):
            logger.warning("No existe un área de Microbiología; la liberación PT no se bloquea.")
            return {'liberado': True, 'mensaje': ''}

        solicitudes = self.solicitud_model.find_all(
            filters={'area_id': area['data']['id']},
            select_columns=['id', 'descripcion', 'estado_id', 'consecutivo'],
        )
        if not solicitudes.get('success'):
            return {'liberado': False, 'mensaje': f"Error consultando Microbiología: {solicitudes.get('error')}"}
        return evaluar_solicitudes_micro(pedido, solicitudes['data'])

    def estado_micro(self, pedido_id: int) -> tuple:
        pedido, error = self._cargar_pedido(pedido_id, con_relaciones=True)
        if error:
            return error
        return self.success_response(self.verificar_estado_micro(pedido))

    def liberar_pt(self, pedido_id: int, usuario: Dict, data: Optional[Dict] = None) -> tuple:
        """
        Libera el producto terminado y lo entrega a Bodega. Bloqueado mientras
        el análisis microbiológico esté pendiente.
        """
        datos, error = self.validar(LiberacionPTSchema(), data)
        if error:
            return error

        pedido, error = self._cargar_pedido(pedido_id, con_relaciones=True)
        if error:
            return error

        micro = self.verificar_estado_micro(pedido)
        if not micro['liberado']:
            return self.error_response(micro['mensaje'], 409)

        extra = {}
        if datos.get('numero_analisis'):
            extra['numero_analisis_pt'] = datos['numero_analisis']
        if datos.get('responsable'):
            extra['responsable_liberacion_pt'] = datos['responsable']

        actualizado, error = self._transicionar(pedido, 'liberar_pt', extra)
        if error:
            return error

        comentario = (datos.get('comentario') or '').strip()
        if comentario:
            self.observacion_controller.registrar(
                pedido_id, usuario.get('usuario') or 'Control Calidad', f"✅ LIBERACIÓN PT: {comentario}"
            )
        self.notificacion_controller.notificar_roles(
            ['bodega'],
            "Pedido Liberado por Calidad",
            f"El pedido #{pedido_id} ha sido liberado por Calidad y está listo para despacho en Bodega.",
            pedido_id,
            TIPO_PROCESO_COMPLETADO
        )
        return self.success_response(actualizado, "Producto Terminado liberado. Enviado a Bodega para despacho.")

    def historial(self, limit: int = 20) -> tuple:
        """Etapas liberadas por Calidad y PT liberados, más recientes primero."""
        historial = self._liberaciones_recientes(limit)
        pts = self.pedido_model.find_liberados_pt(limit)
        if not pts.get('success'):
            return self.error_response(pts.get('error'), 500)
        for p in pts['data']:
            historial.append({
                'id': f"pt-{p['id']}",
                'tipo': 'Producto Terminado',
                'pedido_id': p['id'],
                'articulo': (p.get('productos') or {}).get('articulo'),
                'cliente': (p.get('clientes') or {}).get('nombre'),
                'op': p.get('op'),
                'lote': p.get('lote'),
                'detalle': 'Liberación Final PT',
                'fecha': p.get('fecha_liberacion_pt'),
            })
        return self.success_response(_ordenar_por_fecha(historial))


class MicrobiologiaController(_LiberadorBase):
    """Microbiología: liberación inicial de solicitudes de análisis y de etapas internas."""

    ROL = ROL_MICROBIOLOGIA
    AREA_RESPONSABLES = 'microbiologia'

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.solicitud_model = SolicitudModel()
        self.area_model = AreaModel()
        self.notificacion_controller = NotificacionController()
        self.observacion_controller = ObservacionController()

    def _area_micro(self):
        area = self.area_model.find_por_nombre_parcial('micro')
        if not area.get('success'):
            return None, self.error_response("No se encontró el área de Microbiología.", 404)
        return area['data'], None

    def solicitudes_iniciales(self) -> tuple:
        area, error = self._area_micro()
        if error:
            return error
        result = self.solicitud_model.find_all_con_relaciones(
            {'area_id': area['id'], 'estado_id': estados.SOL_PENDIENTE}
        )
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def liberar_solicitud(self, solicitud_id: int, usuario: Dict, data: Optional[Dict] = None) -> tuple:
        """
        Aprueba el análisis inicial: la solicitud pasa a liberada y, si está
        vinculada a un pedido, se registra la salida de Microbiología.
        """
        datos, error = self.validar(LiberacionPTSchema(), data)
        if error:
            return error

        solicitud = self.solicitud_model.find_by_id(solicitud_id)
        if not solicitud.get('success'):
            return self.error_response("Solicitud no encontrada.", 404)
        solicitud = solicitud['data']
        if solicitud.get('estado_id') != estados.SOL_PENDIENTE:
            return self.error_response("La solicitud ya fue gestionada.", 409)

        comentario = (datos.get('comentario') or '').strip()
        cambios = {
            'estado_id': estados.SOL_LIBERADA_MB,
            'accion_realizada': comentario or "Análisis microbiológico inicial aprobado.",
        }
        if datos.get('numero_analisis'):
            cambios['numero_analisis'] = datos['numero_analisis']
        if datos.get('responsable'):
            cambios['responsable_manual'] = datos['responsable']

        result = self.solicitud_model.update(solicitud_id, cambios)
        if not result.get('success'):
            return self.error_response("Error liberando solicitud.", 500)

        pedido_id = solicitud.get('consecutivo')
        if pedido_id:
            if comentario:
                self.observacion_controller.registrar(
                    pedido_id, usuario.get('usuario') or 'Microbiología', f"✅ LIBERACIÓN INICIAL MB: {comentario}"
                )
            salida = self.pedido_model.update(pedido_id, {'fecha_salida_mb': get_now_local().isoformat()})
            if not salida.get('success'):
                logger.error(f"No se pudo registrar la salida MB del pedido {pedido_id}: {salida.get('error')}")
            self.notificacion_controller.notificar_roles(
                ['produccion', 'controlcalidad'],
                "Liberación MB Inicial",
                f"Microbiología ha liberado la solicitud inicial #{solicitud_id} (Pedido #{pedido_id}).",
                pedido_id,
                TIPO_PROCESO_COMPLETADO
            )
        return self.success_response(result['data'], "Solicitud liberada.")

    def historial(self, limit: int = 10) -> tuple:
        """Etapas liberadas por Microbiología y solicitudes iniciales liberadas."""
        historial = self._liberaciones_recientes(limit)

        area, error = self._area_micro()
        if error:
            return error
        solicitudes = self.solicitud_model.find_all_con_relaciones(
            {'area_id': area['id'], 'estado_id': estados.SOL_LIBERADA_MB}, order_by='created_at.desc'
        )
        if not solicitudes.get('success'):
            return self.error_response(solicitudes.get('error'), 500)
        solicitudes = solicitudes['data'][:limit]

        pedido_ids = [s['consecutivo'] for s in solicitudes if s.get('consecutivo')]
        pedidos = {}
        if pedido_ids:
            result = self.pedido_model.find_all_con_relaciones({'id': ('in', pedido_ids)})
            if result.get('success'):
                pedidos = {p['id']: p for p in result['data']}

        for s in solicitudes:
            p = pedidos.get(s.get('consecutivo')) or {}
            historial.append({
                'id': f"sol-{s['id']}",
                'tipo': 'Liberación Inicial',
                'pedido_id': s.get('consecutivo'),
                'articulo': (p.get('productos') or {}).get('articulo') or '-',
                'cliente': s.get('area_solicitante'),
                'op': p.get('op') or '-',
                'lote': p.get('lote') or '-',
                'detalle': (s.get('tipos_solicitud') or {}).get('nombre') or 'Análisis MB',
                'fecha': s.get('created_at'),
            })
        return self.success_response(_ordenar_por_fecha(historial)[:15])
