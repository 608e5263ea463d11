import logging
from typing import Dict, List, Optional

from portal.controllers.base_controller import BaseController
from portal.controllers.pedido_controller import TransicionPedidoMixin
from portal.controllers.notificacion_controller import (
    NotificacionController, TIPO_ACCION_REQUERIDA, TIPO_INFORMACION
)
from portal.models.pedido import PedidoModel
from portal.models.pedido_bodega_item import PedidoBodegaItemModel
from portal.models.catalogo import MateriaPrimaModel
from portal.utils import estados
from portal.utils.date_utils import get_now_local

logger = logging.getLogger(__name__)


def _referencia_numerica(valor):
    try:
        return float(valor)
    except (TypeError, ValueError):
        return None


def enriquecer_items(items: List[Dict], catalogo: List[Dict]) -> List[Dict]:
    """
    Cruza los insumos solicitados con el catálogo de materias primas por
    referencia numérica. Los que no aparecen muestran la referencia como nombre.
    """
    por_referencia = {}
    for materia in catalogo:
        ref = _referencia_numerica(materia.get('REFERENCIA'))
        if ref is not None:
            por_referencia.setdefault(ref, materia)

    enriquecidos = []
    for item in items:
        materia = por_referencia.get(_referencia_numerica(item.get('referencia_materia_prima')))
        enriquecidos.append({
            **item,
            'materia_prima': materia or {
                'ARTICULO': f"Ref: {item.get('referencia_materia_prima')}",
                'UNIDAD': '—',
            },
        })
    return enriquecidos


class BodegaController(BaseController, TransicionPedidoMixin):
    """
    Bodega: entrega de materias primas a Producción (total o parcial) y
    despacho del producto terminado con autorización de Atención al Cliente.
    """

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.item_model = PedidoBodegaItemModel()
        self.materia_prima_model = MateriaPrimaModel()
        self.notificacion_controller = NotificacionController()

    # -------------------------------------------------------------------------
    # Listados
    # -------------------------------------------------------------------------

    def pedidos_bodega(self) -> tuple:
        """
        Pedidos asignados a bodega más los que siguen su curso con insumos
        sin completar. Se separan en insumos (estado < 11) y despachos PT.
        """
        asignados = self.pedido_model.find_all_con_relaciones({'asignado_a': estados.ASIGNADO_BODEGA})
        if not asignados.get('success'):
            return self.error_response(asignados.get('error'), 500)

        pendientes = self.pedido_model.find_con_items_pendientes()
        if not pendientes.get('success'):
            logger.error(f"Error cargando pedidos con insumos pendientes: {pendientes.get('error')}")

        unicos = {}
        for pedido in asignados['data'] + (pendientes.get('data') or []):
            pedido.pop('pedidos_bodega_items', None)
            unicos[pedido['id']] = pedido
        pedidos = sorted(unicos.values(), key=lambda p: p['id'], reverse=True)

        return self.success_response({
            'insumos': [p for p in pedidos if (p.get('estado_id') or 0) < estados.PEDIDO_ENTREGA_BODEGA],
            'despachos': [p for p in pedidos if (p.get('estado_id') or 0) >= estados.PEDIDO_ENTREGA_BODEGA],
        })

    def historial_entregas(self) -> tuple:
        result = self.pedido_model.find_historial_entregas_mp()
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def _items_enriquecidos(self, pedido_id: int) -> Dict:
        items_result = self.item_model.find_by_pedido(pedido_id)
        if not items_result.get('success'):
            return items_result
        items = items_result['data']
        if not items:
            return {'success': True, 'data': []}

        catalogo = self.materia_prima_model.find_catalogo()
        if not catalogo.get('success'):
            return catalogo
        return {'success': True, 'data': enriquecer_items(items, catalogo['data'])}

    def items_pedido(self, pedido_id: int) -> tuple:
        result = self._items_enriquecidos(pedido_id)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    # -------------------------------------------------------------------------
    # Insumos
    # -------------------------------------------------------------------------

    def marcar_item(self, item_id: int) -> tuple:
        """Alterna el indicador `completado` de un insumo."""
        item = self.item_model.find_by_id(item_id)
        if not item.get('success'):
            return self.error_response('Insumo no encontrado', 404)

        nuevo_valor = not bool(item['data'].get('completado'))
        result = self.item_model.update(item_id, {
            'completado': nuevo_valor,
            'updated_at': get_now_local().isoformat(),
        })
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def guardar_item(self, item_id: int, cantidad_entregada=None, observacion: Optional[str] = None) -> tuple:
        result = self.item_model.update(item_id, {
            'cantidad_entregada': cantidad_entregada,
            'observacion': observacion,
            'updated_at': get_now_local().isoformat(),
        }, keep_none=True)
        if not result.get('success'):
            return self.error_response(result.get('error'), 404)
        return self.success_response(result['data'], "Insumo actualizado.")

    def confirmar_entrega(self, pedido_id: int, confirmar_parcial: bool = False) -> tuple:
        """
        Confirma la entrega de materias primas. Con insumos críticos pendientes
        se bloquea; con solo no críticos pendientes avanza únicamente si se
        confirma la entrega parcial.
        """
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error

        items_result = self.item_model.find_by_pedido(pedido_id)
        if not items_result.get('success'):
            return self.error_response(items_result.get('error'), 500)
        items = items_result['data']
        if not items:
            return self.error_response("No hay insumos cargados para este pedido.", 400)

        todo_completo = all(i.get('completado') for i in items)
        criticos_pendientes = any(i.get('es_critico') and not i.get('completado') for i in items)

        if criticos_pendientes:
            return self.error_response("No se puede confirmar: faltan insumos CRÍTICOS.", 409)

        avanzar = todo_completo or confirmar_parcial
        if avanzar and pedido.get('estado_id') == estados.PEDIDO_ESPERANDO_MATERIA_PRIMA:
            actualizado, error = self._transicionar(pedido, 'entregar_materias_primas')
            if error:
                return error
            self.notificacion_controller.notificar_roles(
                ['produccion'],
                "Materias Primas/insumos ENVIADAS",
                f"Bodega ha enviado insumos para el Pedido #{pedido_id}",
                pedido_id,
                TIPO_ACCION_REQUERIDA
            )
            return self.success_response({'pedido': actualizado, 'avanzado': True},
                                         "Entrega registrada. Pedido enviado a Producción.")

        self.notificacion_controller.notificar_roles(
            ['produccion'],
            "Actualización de Insumos",
            f"Bodega ha actualizado insumos para el Pedido #{pedido_id}.",
            pedido_id,
            TIPO_INFORMACION
        )
        return self.success_response({'pedido': pedido, 'avanzado': False},
                                     "Avance registrado. El pedido permanece en Bodega.")

    # -------------------------------------------------------------------------
    # Despacho de producto terminado
    # -------------------------------------------------------------------------

    def solicitar_autorizacion(self, pedido_id: int) -> tuple:
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error
        actualizado, error = self._transicionar(pedido, 'solicitar_autorizacion')
        if error:
            return error
        self.notificacion_controller.notificar_roles(
            ['atencion', 'comercial'],
            "Autorización de Despacho Requerida",
            f"Bodega solicita autorización para despachar el Pedido #{pedido_id}.",
            pedido_id,
            TIPO_ACCION_REQUERIDA
        )
        return self.success_response(actualizado, "Solicitud enviada a Atención al Cliente.")

    def pendientes_autorizacion(self) -> tuple:
        result = self.pedido_model.find_all_con_relaciones({
            'estado_id': estados.PEDIDO_PENDIENTE_AUTORIZACION,
            'asignado_a': estados.ASIGNADO_ATENCION,
        })
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def autorizar_despacho(self, pedido_id: int) -> tuple:
        """Atención al Cliente autoriza: el pedido sigue en 13 pero vuelve a Bodega."""
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error
        actualizado, error = self._transicionar(pedido, 'autorizar_despacho')
        if error:
            return error
        self.notificacion_controller.notificar_roles(
            ['bodega'],
            "Despacho Autorizado",
            f"Atención al Cliente ha autorizado el despacho del Pedido #{pedido_id}.",
            pedido_id,
            TIPO_INFORMACION
        )
        return self.success_response(actualizado, "Despacho autorizado. El pedido vuelve a Bodega para el despacho físico.")

    def despachar(self, pedido_id: int) -> tuple:
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error
        actualizado, error = self._transicionar(pedido, 'despachar')
        if error:
            return error
        self.notificacion_controller.notificar_roles(
            ['atencion', 'comercial'],
            "Pedido Despachado",
            f"Bodega ha despachado físicamente el Pedido #{pedido_id}. El proceso ha finalizado.",
            pedido_id,
            TIPO_INFORMACION
        )
        return self.success_response(actualizado, "Pedido despachado y finalizado correctamente.")
