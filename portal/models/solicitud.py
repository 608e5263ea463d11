from portal.models.base_model import BaseModel
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

class SolicitudModel(BaseModel):
    """
    Tickets de solicitudes (`solicitudes`): mantenimiento, compras y
    análisis de microbiología.
    """

    SELECT_CON_RELACIONES = """
        *,
        areas ( nombre ),
        tipos_solicitud ( nombre ),
        prioridades ( nombre ),
        estados ( nombre )
    """

    def get_table_name(self) -> str:
        return 'solicitudes'

    def find_all_con_relaciones(self, filters: Optional[Dict] = None, order_by: str = 'id.desc') -> Dict:
        return self.find_all(filters=filters, order_by=order_by, select_query=self.SELECT_CON_RELACIONES)

    def find_max_consecutivo(self, area_id: int) -> Dict:
        """Consecutivo más alto registrado para un área (0 si no hay ninguno)."""
        try:
            result = self._get_query_builder()\
                .select('consecutivo')\
                .eq('area_id', area_id)\
                .not_.is_('consecutivo', 'null')\
                .order('consecutivo', desc=True)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error al obtener el consecutivo del área {area_id}: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}
        maximo = 0
        if result.data:
            try:
                maximo = int(result.data[0].get('consecutivo') or 0)
            except (TypeError, ValueError):
                maximo = 0
        return {'success': True, 'data': maximo}

    def find_by_pedido_y_area(self, pedido_id: int, area_id: int) -> Dict:
        """Solicitudes de un área cuyo consecutivo apunta al pedido."""
        return self.find_all(filters={'area_id': area_id, 'consecutivo': pedido_id}, order_by='id')

    def count_por_estado(self, area_id: Optional[int] = None) -> Dict:
        filters = {'area_id': area_id} if area_id is not None else None
        result = self.find_all(filters=filters, select_columns=['id', 'estado_id'])
        if not result.get('success'):
            return result
        conteo = {}
        for fila in result['data']:
            estado_id = fila.get('estado_id')
            conteo[estado_id] = conteo.get(estado_id, 0) + 1
        return {'success': True, 'data': conteo}


class AprobacionModel(BaseModel):
    """Registro de aprobación de compras y gerencia (`aprobaciones`), uno por solicitud."""

    def get_table_name(self) -> str:
        return 'aprobaciones'

    def upsert_por_solicitud(self, solicitud_id: int, data: Dict) -> Dict:
        try:
            payload = self._prepare_data_for_db({**data, 'solicitud_id': solicitud_id})
            result = self._get_query_builder().upsert(payload, on_conflict='solicitud_id').execute()
            if result.data:
                return {'success': True, 'data': result.data[0]}
            return {'success': False, 'error': 'No se pudo registrar la aprobación.'}
        except Exception as e:
            logger.error(f"Error al registrar aprobación de solicitud {solicitud_id}: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}
