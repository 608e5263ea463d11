from portal.models.base_model import BaseModel
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)

class PedidoEtapaModel(BaseModel):
    """
    Etapas internas instanciadas para un pedido a partir de la plantilla
    de su forma farmacéutica (`pedido_etapas`).
    """

    def get_table_name(self) -> str:
        return 'pedido_etapas'

    def find_by_pedido(self, pedido_id: int) -> Dict:
        return self.find_all(filters={'pedido_id': pedido_id}, order_by='orden')

    def find_by_pedidos(self, pedido_ids: List[int]) -> Dict:
        if not pedido_ids:
            return {'success': True, 'data': []}
        return self.find_all(filters={'pedido_id': ('in', pedido_ids)}, order_by='orden')

    def find_en_revision_con_pedido(self) -> Dict:
        """Etapas en revisión que requieren liberación, con datos del pedido y sus liberaciones."""
        return self.find_all(
            filters={'estado': 'en_revision', 'requiere_liberacion': True},
            order_by='pedido_id',
            select_query="""
                *,
                pedido_etapas_liberaciones ( * ),
                pedidos_produccion ( id, op, lote, estado_id, productos ( articulo, forma_farmaceutica ), clientes ( nombre ) )
            """
        )

    def existe_para_pedido(self, pedido_id: int) -> Dict:
        result = self.find_all(filters={'pedido_id': pedido_id}, select_columns=['id'], limit=1)
        if not result.get('success'):
            return result
        return {'success': True, 'data': len(result['data']) > 0}


class EtapaLiberacionModel(BaseModel):
    """Una fila por rol requerido para liberar una etapa (`pedido_etapas_liberaciones`)."""

    def get_table_name(self) -> str:
        return 'pedido_etapas_liberaciones'

    def find_by_etapa(self, etapa_id: int) -> Dict:
        return self.find_all(filters={'pedido_etapa_id': etapa_id}, order_by='id')

    def find_by_etapas(self, etapa_ids: List[int]) -> Dict:
        if not etapa_ids:
            return {'success': True, 'data': []}
        return self.find_all(filters={'pedido_etapa_id': ('in', etapa_ids)}, order_by='id')

    def reiniciar_por_etapa(self, etapa_id: int) -> Dict:
        """Deja todas las liberaciones de la etapa en su estado inicial."""
        return self.update_where(
            {'pedido_etapa_id': etapa_id},
            {'liberada': False, 'usuario_id': None, 'comentario': ''}
        )

    def find_liberadas_por_rol(self, roles: List[str], limit: int = 20) -> Dict:
        """Últimas liberaciones firmadas por alguno de los roles, con la etapa y el pedido."""
        return self.find_all(
            filters={'rol': ('in', roles), 'liberada': True},
            order_by='created_at.desc',
            limit=limit,
            select_query="""
                id, created_at, comentario, pedido_etapa_id,
                pedido_etapas ( id, nombre, pedido_id,
                    pedidos_produccion ( op, lote, productos ( articulo ), clientes ( nombre ) ) )
            """
        )
