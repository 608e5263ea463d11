from portal.models.base_model import BaseModel
from typing import Dict, Optional

class ProductoModel(BaseModel):
    """Catálogo de productos terminados (`productos`)."""

    def get_table_name(self) -> str:
        return 'productos'

    def find_all_ordenados(self) -> Dict:
        return self.find_all(order_by='articulo')


class ClienteModel(BaseModel):
    def get_table_name(self) -> str:
        return 'clientes'


class AreaModel(BaseModel):
    def get_table_name(self) -> str:
        return 'areas'

    def find_por_nombre_parcial(self, fragmento: str) -> Dict:
        """Primera área cuyo nombre contiene el fragmento (sin distinguir mayúsculas)."""
        result = self.find_all(filters={'nombre_ilike': f'%{fragmento}%'}, order_by='id', limit=1)
        if not result.get('success'):
            return result
        if not result['data']:
            return {'success': False, 'error': f"No se encontró un área que contenga '{fragmento}'."}
        return {'success': True, 'data': result['data'][0]}


class TipoSolicitudModel(BaseModel):
    def get_table_name(self) -> str:
        return 'tipos_solicitud'

    def find_by_area(self, area_id: Optional[int] = None) -> Dict:
        filters = {'id_area_relacionada': area_id} if area_id is not None else None
        return self.find_all(filters=filters, order_by='id')


class PrioridadModel(BaseModel):
    def get_table_name(self) -> str:
        return 'prioridades'


class MateriaPrimaModel(BaseModel):
    """Catálogo de materias primas. La tabla conserva columnas en mayúsculas."""

    def get_table_name(self) -> str:
        return 'MateriasPrimas'

    def find_catalogo(self) -> Dict:
        return self.find_all(select_columns=['REFERENCIA', 'ARTICULO', 'UNIDAD'], order_by='ARTICULO')


class ResponsableLiberacionModel(BaseModel):
    """Personas habilitadas para firmar liberaciones por área (`responsables_liberacion`)."""

    def get_table_name(self) -> str:
        return 'responsables_liberacion'

    def find_activos_por_area(self, area: str) -> Dict:
        return self.find_all(filters={'area': area, 'activo': True})
