import logging
from typing import Dict, Optional

from portal.controllers.base_controller import BaseController
from portal.models.tarea_produccion import TareaProduccionModel
from portal.schemas.catalogo_schema import TareaProduccionSchema
from portal.utils.date_utils import get_today_local, rango_mes

logger = logging.getLogger(__name__)


class CalendarioController(BaseController):
    """Tareas del calendario de producción."""

    def __init__(self):
        super().__init__()
        self.model = TareaProduccionModel()
        self.schema = TareaProduccionSchema()

    def tareas_del_mes(self, year: Optional[int] = None, month: Optional[int] = None) -> tuple:
        hoy = get_today_local()
        year = year or hoy.year
        month = month or hoy.month
        if not 1 <= month <= 12:
            return self.error_response('Mes inválido.', 400)

        inicio, fin = rango_mes(year, month)
        result = self.model.find_entre_fechas(inicio, fin)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        por_dia = {}
        for tarea in result['data']:
            por_dia.setdefault(str(tarea.get('fecha')), []).append(tarea)
        return self.success_response({
            'year': year,
            'month': month,
            'tareas': result['data'],
            'por_dia': por_dia,
        })

    def crear_tarea(self, data: Dict, usuario: Optional[Dict] = None) -> tuple:
        validos, error = self.validar(self.schema, data)
        if error:
            return error
        if validos['fecha'] < get_today_local():
            return self.error_response('No se pueden crear tareas en fechas pasadas.', 400)

        result = self.model.create({
            'fecha': validos['fecha'].isoformat(),
            'titulo': validos['titulo'].strip(),
            'descripcion': validos.get('descripcion'),
            'created_by': (usuario or {}).get('id'),
        })
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'], "Tarea creada.", 201)
