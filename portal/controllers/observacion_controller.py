import logging
from typing import Optional

from portal.controllers.base_controller import BaseController
from portal.models.observacion import ObservacionModel

logger = logging.getLogger(__name__)


class ObservacionController(BaseController):
    """Bitácora append-only de observaciones por pedido."""

    def __init__(self):
        super().__init__()
        self.model = ObservacionModel()

    def registrar(self, pedido_id: int, usuario: Optional[str], texto: str) -> bool:
        """
        Inserta una observación como efecto secundario de otra operación.
        Un fallo se registra pero no se propaga.
        """
        result = self.model.create({
            'pedido_id': pedido_id,
            'usuario': usuario or 'Sistema',
            'observacion': texto,
        })
        if not result.get('success'):
            logger.error(f"No se pudo registrar la observación del pedido {pedido_id}: {result.get('error')}")
            return False
        return True

    def agregar(self, pedido_id: int, usuario: Optional[str], texto: Optional[str]) -> tuple:
        texto = (texto or '').strip()
        if not texto:
            return self.error_response("La observación no puede estar vacía.", 400)

        result = self.model.create({
            'pedido_id': pedido_id,
            'usuario': usuario or 'Sistema',
            'observacion': texto,
        })
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'], "Observación registrada.", 201)

    def listar(self, pedido_id: int) -> tuple:
        result = self.model.find_by_pedido(pedido_id)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])
