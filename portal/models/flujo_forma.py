from portal.models.base_model import BaseModel
from typing import Dict

class FlujoFormaModel(BaseModel):
    """Plantillas de flujo por forma farmacéutica (`flujos_forma`)."""

    def get_table_name(self) -> str:
        return 'flujos_forma'

    def find_activos(self) -> Dict:
        return self.find_all(filters={'activo': True}, order_by='forma_farmaceutica')

    def find_activo_por_forma(self, forma: str) -> Dict:
        """Flujo activo cuya forma coincide sin distinguir mayúsculas."""
        result = self.find_all(filters={'forma_farmaceutica_ilike': forma.strip(), 'activo': True}, limit=1)
        if not result.get('success'):
            return result
        if not result['data']:
            return {'success': False, 'error': f"No existe un flujo activo para la forma farmacéutica '{forma}'."}
        return {'success': True, 'data': result['data'][0]}


class FlujoFormaEtapaModel(BaseModel):
    """Catálogo ordenado de pasos de cada flujo (`flujos_forma_etapas`)."""

    def get_table_name(self) -> str:
        return 'flujos_forma_etapas'

    def find_by_flujo(self, flujo_id: int) -> Dict:
        return self.find_all(filters={'flujo_id': flujo_id}, order_by='orden')
