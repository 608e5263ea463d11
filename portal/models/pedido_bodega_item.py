from portal.models.base_model import BaseModel
from typing import Dict

class PedidoBodegaItemModel(BaseModel):
    """Insumos solicitados a bodega para un pedido (`pedidos_bodega_items`)."""

    def get_table_name(self) -> str:
        return 'pedidos_bodega_items'

    def find_by_pedido(self, pedido_id: int) -> Dict:
        return self.find_all(filters={'pedido_id': pedido_id}, order_by='id')

    def reiniciar_por_pedido(self, pedido_id: int) -> Dict:
        """Marca todos los insumos del pedido como no completados."""
        return self.update_where({'pedido_id': pedido_id}, {'completado': False})
