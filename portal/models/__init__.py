# Este archivo hace que el directorio 'models' sea un paquete de Python.

from .pedido import PedidoModel
from .pedido_etapa import PedidoEtapaModel, EtapaLiberacionModel
from .flujo_forma import FlujoFormaModel, FlujoFormaEtapaModel
from .observacion import ObservacionModel
from .notificacion import NotificacionModel
from .solicitud import SolicitudModel, AprobacionModel

__all__ = [
    'PedidoModel',
    'PedidoEtapaModel',
    'EtapaLiberacionModel',
    'FlujoFormaModel',
    'FlujoFormaEtapaModel',
    'ObservacionModel',
    'NotificacionModel',
    'SolicitudModel',
    'AprobacionModel',
]
