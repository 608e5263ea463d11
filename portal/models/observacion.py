from portal.models.base_model import BaseModel
from typing import Dict

class ObservacionModel(BaseModel):
    """
    Bitácora de observaciones de un pedido (`observaciones_pedido`).
    Solo se insertan filas: no existen operaciones de edición ni borrado.
    """

    def get_table_name(self) -> str:
        return 'observaciones_pedido'

    def find_by_pedido(self, pedido_id: int) -> Dict:
        return self.find_all(filters={'pedido_id': pedido_id}, order_by='created_at.desc')

    def update(self, *args, **kwargs) -> Dict:
        return {'success': False, 'error': 'Las observaciones no se pueden modificar.'}

    def update_where(self, *args, **kwargs) -> Dict:
        return {'success': False, 'error': 'Las observaciones no se pueden modificar.'}

    def delete(self, *args, **kwargs) -> Dict:
        return {'success': False, 'error': 'Las observaciones no se pueden eliminar.'}
