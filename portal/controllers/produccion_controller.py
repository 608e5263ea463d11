import logging
from typing import Dict, Optional

from flask import current_app

from portal.controllers.base_controller import BaseController
from portal.controllers.pedido_controller import TransicionPedidoMixin
from portal.controllers.notificacion_controller import NotificacionController, TIPO_ACCION_REQUERIDA
from portal.controllers.observacion_controller import ObservacionController
from portal.controllers.etapa_controller import EtapaController
from portal.controllers.bodega_controller import enriquecer_items
from portal.models.pedido import PedidoModel
from portal.models.pedido_bodega_item import PedidoBodegaItemModel
from portal.models.solicitud import SolicitudModel
from portal.models.flujo_forma import FlujoFormaModel
from portal.models.catalogo import AreaModel, MateriaPrimaModel
from portal.schemas.pedido_schema import (
    RegistroLoteSchema, AsignarFechasSchema, SolicitudMateriasPrimasSchema, SolicitudMicrobiologiaSchema
)
from portal.services import flujo_pedido
from portal.utils import estados
from portal.utils.date_utils import get_today_local

logger = logging.getLogger(__name__)


class ProduccionController(BaseController, TransicionPedidoMixin):
    """
    Acciones de Producción sobre un pedido: aceptación, registro de lote,
    fechas, materias primas, inicio de producción, paso a etapas internas
    (con o sin solicitud a Microbiología) y acondicionamiento.
    """

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.item_model = PedidoBodegaItemModel()
        self.solicitud_model = SolicitudModel()
        self.flujo_model = FlujoFormaModel()
        self.area_model = AreaModel()
        self.materia_prima_model = MateriaPrimaModel()
        self.notificacion_controller = NotificacionController()
        self.observacion_controller = ObservacionController()
        self.etapa_controller = EtapaController()

    def _accion_simple(self, pedido_id: int, accion: str, extra: Optional[Dict] = None, mensaje: str = "Pedido actualizado."):
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error
        actualizado, error = self._transicionar(pedido, accion, extra)
        if error:
            return error
        return self.success_response(actualizado, mensaje)

    # -------------------------------------------------------------------------
    # Estados 1 a 3
    # -------------------------------------------------------------------------

    def aceptar_pedido(self, pedido_id: int) -> tuple:
        return self._accion_simple(pedido_id, 'aceptar', mensaje="Pedido aceptado.")

    def registrar_lote(self, pedido_id: int, data: Dict) -> tuple:
        """
        Guarda OP, lote, vencimiento y tamaño de lote; calcula desperdicio y
        fecha máxima de entrega en días hábiles.
        """
        datos, error = self.validar(RegistroLoteSchema(), data)
        if error:
            return error

        extra = flujo_pedido.datos_registro_lote(
            datos['op'], datos['lote'], datos['fecha_vencimiento'], datos['tamano_lote'],
            dias_habiles=current_app.config.get('DIAS_HABILES_ENTREGA', 28),
            porcentaje_desperdicio=current_app.config.get('PORCENTAJE_DESPERDICIO', 0.03),
        )
        return self._accion_simple(pedido_id, 'registrar_lote', extra, "Registro de lote guardado.")

    def asignar_fechas(self, pedido_id: int, data: Dict) -> tuple:
        datos, error = self.validar(AsignarFechasSchema(), data)
        if error:
            return error
        extra = {'fecha_propuesta_entrega': datos['fecha_propuesta_entrega'].isoformat()}
        return self._accion_simple(pedido_id, 'asignar_fechas', extra, "Fechas de entrega asignadas.")

    # -------------------------------------------------------------------------
    # Materias primas
    # -------------------------------------------------------------------------

    def solicitar_materias_primas(self, pedido_id: int, data: Optional[Dict] = None) -> tuple:
        """
        Solicita materias primas a Bodega. El pedido sigue esperando materia
        prima pero queda asignado a Bodega. La lista de insumos es opcional.
        """
        datos, error = self.validar(SolicitudMateriasPrimasSchema(), data)
        if error:
            return error

        pedido, error = self._cargar_pedido(pedido_id, con_relaciones=True)
        if error:
            return error
        if pedido.get('estado_id') != estados.PEDIDO_ESPERANDO_MATERIA_PRIMA:
            return self.error_response("Solo se pueden solicitar materias primas con el pedido esperando materia prima.", 409)

        items = [{
            'pedido_id': pedido_id,
            'referencia_materia_prima': item['referencia_materia_prima'],
            'cantidad': item['cantidad'],
            'es_critico': item.get('es_critico', True),
        } for item in datos.get('items', [])]

        if items:
            insert = self.item_model.create_many(items)
            if not insert.get('success'):
                return self.error_response("Error al guardar la lista de materiales.", 500)

        result = self.pedido_model.update(pedido_id, {
            'fecha_solicitud_materias_primas': get_today_local().isoformat(),
            'asignado_a': estados.ASIGNADO_BODEGA,
        })
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        articulo = (pedido.get('productos') or {}).get('articulo') or ''
        self.notificacion_controller.notificar_roles(
            ['bodega'],
            "Solicitud de Materias Primas",
            f"Producción ha solicitado materias primas para el Pedido #{pedido_id} ({articulo})",
            pedido_id,
            TIPO_ACCION_REQUERIDA
        )
        return self.success_response(result['data'], "Materias primas solicitadas a Bodega.")

    def devolver_a_bodega(self, pedido_id: int, motivo: Optional[str], usuario: Dict) -> tuple:
        """Devuelve el pedido a Bodega por material incompleto; los insumos se reinician."""
        motivo = (motivo or '').strip()
        if not motivo:
            return self.error_response("Debes ingresar un motivo para devolver el pedido.", 400)

        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error

        actualizado, error = self._transicionar(pedido, 'devolver_a_bodega')
        if error:
            return error

        self.observacion_controller.registrar(
            pedido_id, usuario.get('usuario') or 'Producción',
            f"🚫 DEVOLUCIÓN A BODEGA (Material Incompleto): {motivo}"
        )
        reinicio = self.item_model.reiniciar_por_pedido(pedido_id)
        if not reinicio.get('success'):
            logger.error(f"No se pudieron reiniciar los insumos del pedido {pedido_id}: {reinicio.get('error')}")

        self.notificacion_controller.notificar_roles(
            ['bodega'],
            "Pedido Devuelto por Producción",
            f"Producción ha devuelto el Pedido #{pedido_id} por materia prima incompleta. Motivo: {motivo}",
            pedido_id,
            TIPO_ACCION_REQUERIDA
        )
        return self.success_response(actualizado, "Pedido devuelto a Bodega.")

    def materiales_solicitados(self, pedido_id: int) -> tuple:
        items = self.item_model.find_by_pedido(pedido_id)
        if not items.get('success'):
            return self.error_response(items.get('error'), 500)
        if not items['data']:
            return self.success_response([])
        catalogo = self.materia_prima_model.find_catalogo()
        if not catalogo.get('success'):
            return self.error_response(catalogo.get('error'), 500)
        return self.success_response(enriquecer_items(items['data'], catalogo['data']))

    def catalogo_materias_primas(self) -> tuple:
        result = self.materia_prima_model.find_catalogo()
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    # -------------------------------------------------------------------------
    # Producción y etapas internas
    # -------------------------------------------------------------------------

    def iniciar_produccion(self, pedido_id: int) -> tuple:
        return self._accion_simple(pedido_id, 'iniciar_produccion', mensaje="Producción iniciada.")

    def _forma_valida(self, pedido: Dict, forma_manual: Optional[str]):
        """Forma efectiva del pedido si tiene un flujo activo; si no, la respuesta de error."""
        forma_producto = ((pedido.get('productos') or {}).get('forma_farmaceutica') or '').strip()
        forma = (forma_manual or '').strip() or forma_producto

        flujos = self.flujo_model.find_activos()
        if not flujos.get('success'):
            return None, self.error_response(flujos.get('error'), 500)
        activas = {(f.get('forma_farmaceutica') or '').strip().lower() for f in flujos['data']}

        if not forma or forma.lower() not in activas:
            if forma_producto and not forma_manual:
                return None, self.error_response(
                    f"La forma \"{forma_producto}\" no tiene flujo activo. Selecciona una válida manualmente.", 400)
            if not forma:
                return None, self.error_response(
                    "Este producto no tiene forma farmacéutica. Debes seleccionarla manualmente.", 400)
            return None, self.error_response(f"La forma farmacéutica \"{forma}\" no tiene flujo activo.", 400)
        return forma, None

    def enviar_solicitud_microbiologia(self, pedido_id: int, data: Dict, usuario: Dict) -> tuple:
        """
        Crea la solicitud de análisis en el área de Microbiología (con el id
        del pedido como consecutivo), pasa el pedido a etapas internas e
        instancia sus etapas. Un fallo al crear etapas se informa sin revertir.
        """
        datos, error = self.validar(SolicitudMicrobiologiaSchema(), data)
        if error:
            return error

        pedido, error = self._cargar_pedido(pedido_id, con_relaciones=True)
        if error:
            return error
        try:
            flujo_pedido.validar_transicion('enviar_a_microbiologia', pedido)
        except flujo_pedido.TransicionInvalida as e:
            return self.error_response(str(e), 409)

        area = self.area_model.find_por_nombre_parcial('micro')
        if not area.get('success'):
            return self.error_response("No se encontró el área de Microbiología.", 404)

        forma, error = self._forma_valida(pedido, datos.get('forma_manual'))
        if error:
            return error

        articulo = (pedido.get('productos') or {}).get('articulo') or ''
        solicitud = self.solicitud_model.create({
            'tipo_solicitud_id': datos['tipo_solicitud_id'],
            'prioridad_id': datos['prioridad_id'],
            'descripcion': f"Pedido #{pedido_id} - {articulo}\n{datos['descripcion']}",
            'justificacion': datos.get('justificacion') or '',
            'usuario_id': usuario.get('usuario'),
            'area_solicitante': usuario.get('areadetrabajo'),
            'estado_id': estados.SOL_PENDIENTE,
            'area_id': area['data']['id'],
            'consecutivo': pedido_id,
        })
        if not solicitud.get('success'):
            return self.error_response("Error al enviar la solicitud.", 500)

        actualizado, error = self._transicionar(pedido, 'enviar_a_microbiologia')
        if error:
            return self.error_response(
                f"Solicitud enviada, pero error actualizando el pedido: {error[0].get('error')}", error[1])

        etapas = self.etapa_controller.instanciar_etapas(pedido, forma)
        if not etapas.get('success'):
            logger.error(f"Pedido {pedido_id}: solicitud MB creada pero fallaron las etapas: {etapas.get('error')}")
            return self.success_response(
                {'pedido': actualizado, 'solicitud': solicitud['data'], 'etapas_error': etapas.get('error')},
                f"Solicitud enviada y pedido actualizado, pero falló la creación de etapas: {etapas.get('error')}"
            )

        return self.success_response(
            {'pedido': actualizado, 'solicitud': solicitud['data'], 'etapas': etapas['data']},
            "Solicitud enviada a Microbiología."
        )

    def omitir_microbiologia(self, pedido_id: int, forma_manual: Optional[str] = None) -> tuple:
        """Pasa a etapas internas sin solicitud a Microbiología. Las etapas se crean primero."""
        pedido, error = self._cargar_pedido(pedido_id, con_relaciones=True)
        if error:
            return error
        try:
            flujo_pedido.validar_transicion('omitir_microbiologia', pedido)
        except flujo_pedido.TransicionInvalida as e:
            return self.error_response(str(e), 409)

        forma, error = self._forma_valida(pedido, forma_manual)
        if error:
            return error

        etapas = self.etapa_controller.instanciar_etapas(pedido, forma)
        if not etapas.get('success'):
            return self.error_response(f"Error al avanzar: {etapas.get('error')}", 500)

        actualizado, error = self._transicionar(pedido, 'omitir_microbiologia')
        if error:
            return error
        return self.success_response({'pedido': actualizado, 'etapas': etapas['data']}, "Etapa avanzada exitosamente.")

    # -------------------------------------------------------------------------
    # Acondicionamiento
    # -------------------------------------------------------------------------

    def iniciar_acondicionamiento(self, pedido_id: int) -> tuple:
        """Requiere que todas las etapas internas estén completadas, si el pedido las tiene."""
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error

        flujo = self.etapa_controller.estado_flujo(pedido_id)
        if not flujo.get('success'):
            return self.error_response(flujo.get('error'), 500)

        actualizado, error = self._transicionar(pedido, 'iniciar_acondicionamiento', etapas=flujo['data']['etapas'])
        if error:
            return error
        return self.success_response(actualizado, "Inicio de acondicionamiento registrado.")

    def finalizar_acondicionamiento(self, pedido_id: int) -> tuple:
        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error
        actualizado, error = self._transicionar(pedido, 'finalizar_acondicionamiento')
        if error:
            return error
        self.notificacion_controller.notificar_roles(
            ['controlcalidad'],
            "Liberación PT Requerida",
            f"Acondicionamiento finalizado para Pedido #{pedido_id}. Pendiente liberación PT.",
            pedido_id,
            TIPO_ACCION_REQUERIDA
        )
        return self.success_response(actualizado, "Acondicionamiento finalizado. Pedido enviado a Calidad.")
