from typing import Dict, Any, Optional, Tuple
from marshmallow import Schema, ValidationError
from portal.schemas.responses import ResponseSchema
import logging

logger = logging.getLogger(__name__)

class BaseController:
    """
    Controlador base que proporciona métodos de utilidad comunes heredables
    por otros controladores de la aplicación.
    """

    def __init__(self):
        self.response_schema = ResponseSchema()

    def success_response(self, data: Any = None, message: str = "Acción exitosa", status_code: int = 200) -> tuple:
        """
        Genera una tupla de respuesta HTTP estándar para operaciones exitosas.
        """
        response = {
            'success': True,
            'data': data,
            'message': message
        }
        return self.response_schema.dump(response), status_code

    def error_response(self, error_message: str, status_code: int = 400, details: Optional[Dict] = None) -> tuple:
        """
        Genera una tupla de respuesta HTTP estándar para operaciones fallidas.
        """
        response = {
            'success': False,
            'error': str(error_message)
        }
        if details:
            response['details'] = details
        return self.response_schema.dump(response), status_code

    def validar(self, schema: Schema, data: Optional[Dict]) -> Tuple[Optional[Dict], Optional[tuple]]:
        """
        Valida `data` con el schema. Devuelve (datos_validados, None) o
        (None, respuesta_de_error) con los mensajes de marshmallow.
        """
        try:
            return schema.load(data or {}), None
        except ValidationError as e:
            primer_error = next(iter(e.messages.values()), 'Datos inválidos')
            if isinstance(primer_error, list):
                primer_error = primer_error[0]
            return None, self.error_response(f"Datos inválidos: {primer_error}", 400, details=e.messages)

    def paginate_results(self, data: list, page: int, page_size: int) -> Dict:
        """
        Aplica paginación a una lista de resultados.
        """
        total = len(data)
        start = (page - 1) * page_size
        end = start + page_size

        return {
            'items': data[start:end],
            'pagination': {
                'page': page,
                'page_size': page_size,
                'total_items': total,
                'total_pages': (total + page_size - 1) // page_size
            }
        }
