from portal.models.base_model import BaseModel
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

class PedidoModel(BaseModel):
    """
    Modelo para la tabla `pedidos_produccion`: una fila por pedido, mutada en
    sitio a medida que avanza por el flujo.
    """

    SELECT_CON_RELACIONES = """
        *,
        productos ( articulo, nombre_registro_lote, presentacion_comercial, forma_farmaceutica, referencia ),
        clientes ( nombre ),
        estados ( nombre )
    """

    def get_table_name(self) -> str:
        return 'pedidos_produccion'

    def find_all_con_relaciones(self, filters: Optional[Dict] = None, order_by: str = 'id.desc', limit: Optional[int] = None) -> Dict:
        """Pedidos con producto, cliente y nombre de estado embebidos."""
        return self.find_all(filters=filters, order_by=order_by, limit=limit, select_query=self.SELECT_CON_RELACIONES)

    def find_by_id_con_relaciones(self, pedido_id: int) -> Dict:
        result = self.find_all(filters={'id': pedido_id}, select_query=self.SELECT_CON_RELACIONES)
        if not result.get('success'):
            return result
        if not result['data']:
            return {'success': False, 'error': 'Pedido no encontrado'}
        return {'success': True, 'data': result['data'][0]}

    def find_con_items_pendientes(self) -> Dict:
        """
        Pedidos que no están asignados a bodega (o sin departamento asignado)
        pero conservan insumos sin completar (entregas parciales).
        """
        try:
            result = self._get_query_builder()\
                .select(self.SELECT_CON_RELACIONES + ", pedidos_bodega_items!inner(id)")\
                .or_('asignado_a.is.null,asignado_a.neq.bodega')\
                .eq('pedidos_bodega_items.completado', False)\
                .order('id', desc=True)\
                .execute()
            return {'success': True, 'data': result.data or []}
        except Exception as e:
            logger.error(f"Error al buscar pedidos con insumos pendientes: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def find_historial_entregas_mp(self) -> Dict:
        """Pedidos con fecha de entrega de materias primas registrada, más recientes primero."""
        try:
            result = self._get_query_builder()\
                .select("id, fecha_entrega_de_materias_primas_e_insumos, productos ( articulo ), clientes ( nombre )")\
                .not_.is_('fecha_entrega_de_materias_primas_e_insumos', 'null')\
                .order('fecha_entrega_de_materias_primas_e_insumos', desc=True)\
                .execute()
            return {'success': True, 'data': result.data or []}
        except Exception as e:
            logger.error(f"Error al obtener historial de entregas de MP: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def update_estado(self, pedido_id: int, data: Dict) -> Dict:
        """
        Actualiza estado y columnas asociadas de un pedido. Conserva los None
        para poder limpiar fechas o `asignado_a`.
        """
        return self.update(pedido_id, data, keep_none=True)

    def update_metricas(self, filas: List[Dict]) -> Dict:
        """Escribe las métricas calculadas del dashboard, una fila por pedido."""
        actualizados = 0
        errores = []
        for fila in filas:
            pedido_id = fila.get('id')
            cambios = {k: v for k, v in fila.items() if k != 'id'}
            if not cambios:
                continue
            result = self.update(pedido_id, cambios)
            if result.get('success'):
                actualizados += 1
            else:
                errores.append({'id': pedido_id, 'error': result.get('error')})
        return {'success': not errores, 'data': {'actualizados': actualizados, 'errores': errores}}

    def find_liberados_pt(self, limit: int = 20) -> Dict:
        """Pedidos con producto terminado liberado, más recientes primero."""
        try:
            result = self._get_query_builder()\
                .select("id, fecha_liberacion_pt, cantidad, op, lote, productos ( articulo ), clientes ( nombre )")\
                .not_.is_('fecha_liberacion_pt', 'null')\
                .order('fecha_liberacion_pt', desc=True)\
                .limit(limit)\
                .execute()
            return {'success': True, 'data': result.data or []}
        except Exception as e:
            logger.error(f"Error al obtener pedidos liberados: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}
