from portal.models.base_model import BaseModel
from datetime import date
from typing import Dict

class TareaProduccionModel(BaseModel):
    """Tareas del calendario de producción (`tareas_produccion`)."""

    def get_table_name(self) -> str:
        return 'tareas_produccion'

    def find_entre_fechas(self, inicio: date, fin: date) -> Dict:
        return self.find_all(
            filters={'fecha_gte': inicio.isoformat(), 'fecha_lte': fin.isoformat()},
            order_by='fecha'
        )
