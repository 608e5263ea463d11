from portal.database import Database
from typing import Dict, List, Optional, Any
from abc import ABC, abstractmethod
import logging
from datetime import datetime, date
from decimal import Decimal
from uuid import UUID

logger = logging.getLogger(__name__)

class BaseModel(ABC):
    """
    Clase base abstracta que proporciona una interfaz común y una implementación
    genérica para las operaciones CRUD sobre una tabla de Supabase.

    Ningún método lanza excepciones de base de datos: todos devuelven un
    diccionario `{'success': bool, 'data' | 'error': ...}`.
    """

    def __init__(self):
        self.db = Database().client
        self.table_name = self.get_table_name()

    def _get_query_builder(self):
        """
        Devuelve el constructor de consultas para la tabla del modelo.
        """
        return self.db.table(self.table_name)

    @abstractmethod
    def get_table_name(self) -> str:
        """
        Debe devolver el nombre de la tabla con la que el modelo interactúa.
        """
        pass

    def _prepare_data_for_db(self, data: Dict, keep_none: bool = False) -> Dict:
        """
        Prepara un diccionario de datos para ser enviado a la base de datos.
        Convierte Decimal, fechas y UUID a formatos compatibles con JSON.
        Los valores None se descartan salvo que `keep_none` sea True
        (necesario para limpiar columnas de fecha al revertir un estado).
        """
        clean_data = {}
        for key, value in data.items():
            if value is None:
                if keep_none:
                    clean_data[key] = None
                continue
            if isinstance(value, (UUID, Decimal)):
                clean_data[key] = str(value)
            elif isinstance(value, (date, datetime)):
                clean_data[key] = value.isoformat()
            else:
                clean_data[key] = value
        return clean_data

    def _apply_filters(self, query, filters: Optional[Dict]):
        """
        Aplica filtros al constructor de consultas. Soporta:
        - sufijos de operador en la clave (`fecha_gte`, `estado_id_in`, `asignado_a_is`)
        - tuplas `(operador, valor)`
        - listas (siempre `in`)
        - igualdad simple
        """
        if not filters:
            return query

        for key, value in filters.items():
            if value is None:
                continue

            op_map = {
                'eq': query.eq, 'gt': query.gt, 'gte': query.gte,
                'lt': query.lt, 'lte': query.lte, 'in': query.in_,
                'ilike': query.ilike, 'neq': query.neq, 'is': query.is_,
            }

            parts = key.split('_')
            operator = parts[-1]

            if len(parts) > 1 and operator in op_map:
                column_name = '_'.join(parts[:-1])
                query = op_map[operator](column_name, value)
            elif isinstance(value, tuple) and len(value) == 2:
                operator, filter_value = value
                if operator.lower() in op_map:
                    query = op_map[operator.lower()](key, filter_value)
            elif isinstance(value, list):
                query = query.in_(key, value)
            else:
                query = query.eq(key, value)

        return query

    def create(self, data: Dict) -> Dict:
        """
        Crea un nuevo registro en la tabla.
        """
        try:
            clean_data = self._prepare_data_for_db(data)
            result = self._get_query_builder().insert(clean_data, returning="representation").execute()

            if result.data:
                logger.info(f"Registro creado en {self.table_name}: {result.data[0].get('id')}")
                return {'success': True, 'data': result.data[0]}

            return {'success': False, 'error': 'No se pudo crear el registro'}

        except Exception as e:
            logger.error(f"Error al crear en {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def create_many(self, rows: List[Dict]) -> Dict:
        """
        Inserta varios registros en una sola ida a la base de datos.
        """
        if not rows:
            return {'success': True, 'data': []}
        try:
            clean_rows = [self._prepare_data_for_db(row) for row in rows]
            result = self._get_query_builder().insert(clean_rows, returning="representation").execute()
            logger.info(f"{len(result.data or [])} registros creados en {self.table_name}")
            return {'success': True, 'data': result.data or []}
        except Exception as e:
            logger.error(f"Error al crear en lote en {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def find_by_id(self, id_value: Any, id_field: str = None) -> Dict:
        """
        Busca un registro por su campo de identificación.
        """
        try:
            if id_field is None:
                id_field = "id"

            result = self._get_query_builder().select('*').eq(id_field, id_value).execute()

            if result.data:
                return {'success': True, 'data': result.data[0]}

            return {'success': False, 'error': 'Registro no encontrado'}

        except Exception as e:
            logger.error(f"Error al buscar en {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def find_all(self, filters: Optional[Dict] = None, order_by: str = None, limit: Optional[int] = None, select_columns: Optional[List[str]] = None, select_query: Optional[str] = None) -> Dict:
        """
        Obtiene todos los registros que coinciden con los filtros, con opciones
        de ordenación (`'columna.desc'`) y límite.
        """
        try:
            columns_to_select = select_query if select_query else (','.join(select_columns) if select_columns else '*')
            query = self._get_query_builder().select(columns_to_select)
            query = self._apply_filters(query, filters)

            if order_by:
                column, *direction = order_by.split('.')
                descending = len(direction) > 0 and direction[0].lower() == 'desc'
                query = query.order(column, desc=descending)

            if limit:
                query = query.limit(limit)

            result = query.execute()
            return {'success': True, 'data': result.data or []}

        except Exception as e:
            logger.error(f"Error al obtener registros de {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def update(self, id_value: Any, data: Dict, id_field: str = None, keep_none: bool = False) -> Dict:
        """
        Actualiza un registro existente.
        """
        try:
            if id_field is None:
                id_field = "id"

            if not data:
                return {'success': False, 'error': 'No se proporcionaron datos para actualizar.'}

            clean_data = self._prepare_data_for_db(data, keep_none=keep_none)
            result = self._get_query_builder().update(clean_data).eq(id_field, id_value).execute()

            if result.data:
                logger.info(f"Registro actualizado en {self.table_name}: {id_value}")
                return {'success': True, 'data': result.data[0]}

            return {'success': False, 'error': 'No se pudo actualizar el registro o no se encontró.'}

        except Exception as e:
            logger.error(f"Error al actualizar en {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def update_where(self, filters: Dict, data: Dict) -> Dict:
        """
        Actualiza todos los registros que cumplan los filtros. Devuelve las filas afectadas.
        """
        try:
            if not filters:
                return {'success': False, 'error': 'Se requieren filtros para una actualización masiva.'}
            clean_data = self._prepare_data_for_db(data, keep_none=True)
            query = self._apply_filters(self._get_query_builder().update(clean_data), filters)
            result = query.execute()
            return {'success': True, 'data': result.data or []}
        except Exception as e:
            logger.error(f"Error al actualizar en lote en {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def delete(self, id_value: Any, id_field: str = None) -> Dict:
        """
        Elimina físicamente un registro.
        """
        try:
            if id_field is None:
                id_field = "id"

            self._get_query_builder().delete().eq(id_field, id_value).execute()
            logger.info(f"Registro eliminado. ID: {id_value} en tabla: {self.table_name}")
            return {'success': True, 'message': 'Registro eliminado.'}

        except Exception as e:
            logger.error(f"Error al eliminar en {self.table_name}: {str(e)}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def get_count(self, filtros: Optional[Dict] = None) -> Dict:
        """
        Cuenta el número de registros que coinciden con los filtros.
        """
        try:
            query = self._get_query_builder().select('id', count='exact')
            query = self._apply_filters(query, filtros)
            response = query.execute()
            return {'success': True, 'data': response.count}
        except Exception as e:
            logger.error(f"Error contando registros en {self.table_name}: {e}")
            return {'success': False, 'error': str(e)}
