import logging
from typing import Dict, Optional

from portal.controllers.base_controller import BaseController
from portal.models.catalogo import ProductoModel, ClienteModel, AreaModel, TipoSolicitudModel, PrioridadModel
from portal.models.flujo_forma import FlujoFormaModel
from portal.schemas.catalogo_schema import ProductoSchema

logger = logging.getLogger(__name__)


class ProductoController(BaseController):
    """
    Catálogos de la aplicación: fichas de producto de Dirección Técnica,
    clientes y los catálogos que usa el formulario de solicitudes.
    """

    def __init__(self):
        super().__init__()
        self.model = ProductoModel()
        self.cliente_model = ClienteModel()
        self.area_model = AreaModel()
        self.tipo_model = TipoSolicitudModel()
        self.prioridad_model = PrioridadModel()
        self.flujo_model = FlujoFormaModel()
        self.schema = ProductoSchema()

    def crear_producto(self, data: Dict) -> tuple:
        limpio = {k: (v.strip() if isinstance(v, str) else v) for k, v in (data or {}).items()}
        limpio = {k: v for k, v in limpio.items() if v != ''}
        validos, error = self.validar(self.schema, limpio)
        if error:
            return error

        existente = self.model.find_by_id(validos['referencia'], 'referencia')
        if existente.get('success') and existente.get('data'):
            return self.error_response(f"Ya existe un producto con la referencia {validos['referencia']}.", 409)

        result = self.model.create(validos)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        logger.info(f"Producto creado: {validos['articulo']} ({validos['referencia']})")
        return self.success_response(result['data'], "Producto creado exitosamente.", 201)

    def listar_productos(self) -> tuple:
        result = self.model.find_all_ordenados()
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def listar_clientes(self) -> tuple:
        result = self.cliente_model.find_all(order_by='nombre')
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def catalogos_solicitud(self, area_id: Optional[int] = None) -> tuple:
        """Áreas, tipos (del área elegida, si hay una) y prioridades."""
        areas = self.area_model.find_all(order_by='id')
        tipos = self.tipo_model.find_by_area(area_id)
        prioridades = self.prioridad_model.find_all(order_by='id')
        for result in (areas, tipos, prioridades):
            if not result.get('success'):
                return self.error_response(result.get('error'), 500)
        return self.success_response({
            'areas': areas['data'],
            'tipos': tipos['data'],
            'prioridades': prioridades['data'],
        })

    def flujos_activos(self) -> tuple:
        result = self.flujo_model.find_activos()
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])
