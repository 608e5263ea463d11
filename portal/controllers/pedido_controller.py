import logging
from typing import Dict, List, Optional

import pandas as pd
import re

from portal.controllers.base_controller import BaseController
from portal.controllers.notificacion_controller import NotificacionController, TIPO_INFO
from portal.controllers.observacion_controller import ObservacionController
from portal.controllers.etapa_controller import EtapaController
from portal.models.pedido import PedidoModel
from portal.models.observacion import ObservacionModel
from portal.models.catalogo import ProductoModel, ClienteModel
from portal.schemas.pedido_schema import PedidoSchema, PedidoMasivoItemSchema, FiltrosPedidoSchema
from portal.services import flujo_pedido
from portal.services.flujo_pedido import TransicionInvalida
from portal.utils import estados
from portal.utils.date_utils import get_today_local

logger = logging.getLogger(__name__)

COLUMNAS_CONCEPTO = ('Concepto (Comentario)', 'Concepto')
COLUMNA_CANTIDAD = 'Cantidad'
_PATRON_REFERENCIA = re.compile(r'\(([^)]+)\)')


def _sin_ceros(referencia) -> str:
    return str(referencia).strip().lstrip('0')


class TransicionPedidoMixin:
    """
    Carga de pedidos y aplicación de transiciones del flujo. Lo comparten
    todos los controladores que mueven un pedido de estado; requiere
    `self.pedido_model`.
    """

    def _cargar_pedido(self, pedido_id: int, con_relaciones: bool = False):
        if con_relaciones:
            result = self.pedido_model.find_by_id_con_relaciones(pedido_id)
        else:
            result = self.pedido_model.find_by_id(pedido_id)
        if not result.get('success') or not result.get('data'):
            return None, self.error_response(f"Pedido #{pedido_id} no encontrado.", 404)
        return result['data'], None

    def _transicionar(self, pedido: Dict, accion: str, extra: Optional[Dict] = None,
                      etapas: Optional[List[Dict]] = None):
        """
        Aplica `accion` al pedido y persiste el cambio. Devuelve
        (pedido_actualizado, None) o (None, respuesta_de_error).
        """
        try:
            cambios = flujo_pedido.construir_actualizacion(accion, pedido, extra, etapas=etapas)
        except TransicionInvalida as e:
            logger.warning(f"Transición rechazada en pedido {pedido.get('id')}: {e}")
            return None, self.error_response(str(e), 409)

        result = self.pedido_model.update_estado(pedido['id'], cambios)
        if not result.get('success'):
            return None, self.error_response(result.get('error', 'No se pudo actualizar el pedido.'), 500)

        logger.info(f"Pedido {pedido['id']}: '{accion}' {pedido.get('estado_id')} -> {cambios['estado_id']}")
        return result['data'], None


class PedidoController(BaseController, TransicionPedidoMixin):
    """
    Controlador para el registro de pedidos (individual y masivo desde Excel)
    y las consultas generales: listados, detalle y cancelación.
    """

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.producto_model = ProductoModel()
        self.cliente_model = ClienteModel()
        self.observacion_model = ObservacionModel()
        self.notificacion_controller = NotificacionController()
        self.observacion_controller = ObservacionController()
        self.etapa_controller = EtapaController()
        self.schema = PedidoSchema()

    # -------------------------------------------------------------------------
    # Registro
    # -------------------------------------------------------------------------

    def _insertar_pedido(self, datos: Dict, usuario: Dict, titulo: str, mensaje_plantilla: str) -> Dict:
        nuevo = {
            'referencia': datos['referencia'],
            'cliente_id': datos['cliente_id'],
            'cantidad': datos['cantidad'],
            'prioridad': datos.get('prioridad') or 'Bajo',
            'fecha_recepcion_cliente': get_today_local().isoformat(),
            'estado_id': estados.PEDIDO_PENDIENTE,
        }
        result = self.pedido_model.create(nuevo)
        if not result.get('success'):
            return result

        pedido = result['data']
        observaciones = (datos.get('observaciones') or '').strip()
        if observaciones:
            self.observacion_controller.registrar(pedido['id'], usuario.get('usuario'), observaciones)

        self.notificacion_controller.notificar_roles(
            ['produccion', 'gerencia'], titulo, mensaje_plantilla.format(id=pedido['id']), pedido['id'], TIPO_INFO
        )
        return result

    def crear_pedido(self, data: Dict, usuario: Dict) -> tuple:
        """Registra un pedido en estado Pendiente con fecha de recepción de hoy."""
        datos, error = self.validar(self.schema, data)
        if error:
            return error

        producto = self.producto_model.find_by_id(datos['referencia'], 'referencia')
        if not producto.get('success'):
            return self.error_response(f"El producto con referencia '{datos['referencia']}' no existe.", 404)

        cliente = self.cliente_model.find_by_id(datos['cliente_id'])
        if not cliente.get('success'):
            return self.error_response("El cliente seleccionado no existe.", 404)

        nombre_cliente = cliente['data'].get('nombre', '')
        result = self._insertar_pedido(
            datos, usuario, "Nuevo Pedido Registrado", "Pedido #{id} - " + str(nombre_cliente)
        )
        if not result.get('success'):
            return self.error_response(result.get('error', 'No se pudo registrar el pedido.'), 500)
        return self.success_response(result['data'], "Pedido registrado correctamente.", 201)

    def previsualizar_carga_masiva(self, archivo) -> tuple:
        """
        Lee la primera hoja del Excel y detecta la referencia entre paréntesis
        de la columna de concepto. No guarda nada: devuelve las filas para que
        el usuario asigne cliente y prioridad.
        """
        try:
            df = pd.read_excel(archivo, engine='openpyxl')
        except Exception as e:
            logger.error(f"Error leyendo archivo de carga masiva: {e}", exc_info=True)
            return self.error_response(f"No se pudo leer el archivo: {e}", 400)

        productos_result = self.producto_model.find_all(select_columns=['referencia', 'articulo'])
        if not productos_result.get('success'):
            return self.error_response(productos_result.get('error'), 500)
        productos = {_sin_ceros(p.get('referencia')): p for p in productos_result['data'] if p.get('referencia') is not None}

        items = []
        for indice, fila in df.iterrows():
            concepto = None
            for columna in COLUMNAS_CONCEPTO:
                if columna in df.columns and pd.notna(fila[columna]) and str(fila[columna]).strip():
                    concepto = str(fila[columna])
                    break

            cantidad = 0
            if COLUMNA_CANTIDAD in df.columns:
                cantidad = pd.to_numeric(fila[COLUMNA_CANTIDAD], errors='coerce')
                cantidad = 0 if pd.isna(cantidad) else cantidad

            coincidencia = _PATRON_REFERENCIA.search(concepto or '')
            referencia = coincidencia.group(1).strip() if coincidencia else None
            if not referencia or cantidad <= 0:
                continue

            producto = productos.get(_sin_ceros(referencia))
            items.append({
                'fila': int(indice) + 2,
                'referencia': producto['referencia'] if producto else referencia,
                'articulo': producto['articulo'] if producto else f"Ref: {referencia} (No encontrada)",
                'cantidad': int(cantidad) if float(cantidad).is_integer() else float(cantidad),
                'cliente_id': None,
                'prioridad': 'Bajo',
                'observaciones': '',
                'encontrado': producto is not None,
            })

        if not items:
            return self.error_response(
                "No se detectaron productos válidos con formato (referencia) en la columna 'Concepto'.", 400)
        return self.success_response(items, f"{len(items)} filas detectadas.")

    def crear_pedidos_masivos(self, items: List[Dict], usuario: Dict) -> tuple:
        """Registra los pedidos de una carga masiva ya revisada. Todos deben tener cliente y producto."""
        if not items:
            return self.error_response("No hay pedidos para registrar.", 400)

        validados = []
        for item in items:
            datos, error = self.validar(PedidoMasivoItemSchema(), item)
            if error:
                return error
            # `encontrado` viene de la previsualización; el producto se comprueba de nuevo aquí.
            producto = self.producto_model.find_by_id(datos['referencia'], 'referencia')
            if not producto.get('success') or not producto.get('data'):
                return self.error_response(
                    f"La referencia '{datos.get('referencia')}' no existe en el sistema.", 400)
            validados.append(datos)

        creados = []
        detalles = []
        for datos in validados:
            result = self._insertar_pedido(datos, usuario, "Nuevo Pedido (Masivo)", "Pedido #{id} registrado vía Excel.")
            if result.get('success'):
                creados.append(result['data']['id'])
            else:
                detalles.append(f"Referencia {datos['referencia']}: {result.get('error')}")

        resultado = {'creados': len(creados), 'ids': creados, 'errores': len(detalles), 'detalles': detalles}
        if detalles and not creados:
            return self.error_response("No se pudo registrar ningún pedido.", 500, details=resultado)
        return self.success_response(resultado, "Carga masiva procesada.", 201)

    # -------------------------------------------------------------------------
    # Consultas
    # -------------------------------------------------------------------------

    def _filtros_db(self, filtros: Dict) -> Dict:
        db = {}
        if filtros.get('estado_id') is not None:
            db['estado_id'] = filtros['estado_id']
        asignado = filtros.get('asignado_a')
        if asignado == estados.ASIGNADO_SIN:
            db['asignado_a_is'] = 'null'
        elif asignado:
            db['asignado_a'] = asignado
        if filtros.get('cliente_id') is not None:
            db['cliente_id'] = filtros['cliente_id']
        if filtros.get('referencia'):
            db['referencia'] = filtros['referencia']
        if filtros.get('fecha_desde'):
            db['fecha_recepcion_cliente_gte'] = filtros['fecha_desde'].isoformat()
        if filtros.get('fecha_hasta'):
            db['fecha_recepcion_cliente_lte'] = filtros['fecha_hasta'].isoformat()
        return db

    @staticmethod
    def _coincide_texto(pedido: Dict, texto: str) -> bool:
        texto = texto.lower()
        campos = [
            pedido.get('id'), pedido.get('referencia'), pedido.get('op'), pedido.get('lote'),
            (pedido.get('productos') or {}).get('articulo'),
            (pedido.get('clientes') or {}).get('nombre'),
        ]
        return any(texto in str(c).lower() for c in campos if c is not None)

    def buscar_pedidos(self, filtros: Optional[Dict] = None, base: Optional[Dict] = None) -> Dict:
        """Pedidos con relaciones según filtros de UI, más `base` (filtros fijos de la vista)."""
        filtros_db = dict(base or {})
        filtros_db.update(self._filtros_db(filtros or {}))
        result = self.pedido_model.find_all_con_relaciones(filtros_db)
        if not result.get('success'):
            return result
        pedidos = result['data']
        texto = ((filtros or {}).get('texto') or '').strip()
        if texto:
            pedidos = [p for p in pedidos if self._coincide_texto(p, texto)]
        return {'success': True, 'data': pedidos}

    def listar_pedidos(self, filtros: Optional[Dict] = None) -> tuple:
        datos, error = self.validar(FiltrosPedidoSchema(), filtros)
        if error:
            return error
        result = self.buscar_pedidos(datos)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def listar_por_asignado(self, area: str) -> tuple:
        result = self.buscar_pedidos(base={'asignado_a': area})
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def pedidos_en_curso(self, filtros: Optional[Dict] = None) -> tuple:
        """Pedidos que aún no llegan a autorización de despacho ni están finalizados."""
        datos, error = self.validar(FiltrosPedidoSchema(), filtros)
        if error:
            return error
        base = {'estado_id_lt': estados.PEDIDO_PENDIENTE_AUTORIZACION, 'estado_id': ('neq', estados.PEDIDO_FINALIZADO)}
        datos.pop('estado_id', None)
        result = self.buscar_pedidos(datos, base=base)
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)

        pedidos = result['data']
        activas = self.etapa_controller.etapas_activas(
            [p['id'] for p in pedidos if p.get('estado_id') == estados.PEDIDO_ETAPAS_INTERNAS]
        )
        nombres = activas.get('data', {}) if activas.get('success') else {}
        for pedido in pedidos:
            pedido['etapa_activa'] = nombres.get(pedido['id'])
        return self.success_response(pedidos)

    def pedidos_finalizados(self, filtros: Optional[Dict] = None) -> tuple:
        datos, error = self.validar(FiltrosPedidoSchema(), filtros)
        if error:
            return error
        datos.pop('estado_id', None)
        result = self.buscar_pedidos(datos, base={'estado_id': estados.PEDIDO_FINALIZADO})
        if not result.get('success'):
            return self.error_response(result.get('error'), 500)
        return self.success_response(result['data'])

    def obtener_detalle(self, pedido_id: int, rol: Optional[str] = None) -> tuple:
        """
        Detalle completo de un pedido: datos con relaciones, observaciones,
        etapas internas, historial de hitos y acciones que el rol puede ejecutar.
        """
        pedido, error = self._cargar_pedido(pedido_id, con_relaciones=True)
        if error:
            return error

        observaciones = self.observacion_model.find_by_pedido(pedido_id)
        etapas_result = self.etapa_controller._etapas_con_liberaciones(pedido_id)
        etapas = etapas_result.get('data', []) if etapas_result.get('success') else []

        detalle = {
            'pedido': pedido,
            'estado': estados.nombre_estado(pedido.get('estado_id')),
            'observaciones': observaciones.get('data', []) if observaciones.get('success') else [],
            'etapas': etapas,
            'historial': flujo_pedido.historial_pedido(pedido),
            'acciones_disponibles': flujo_pedido.acciones_disponibles(pedido, rol, etapas),
        }
        return self.success_response(detalle)

    # -------------------------------------------------------------------------
    # Cancelación
    # -------------------------------------------------------------------------

    def cancelar_pedido(self, pedido_id: int, motivo: Optional[str], usuario: Dict) -> tuple:
        motivo = (motivo or '').strip()
        if not motivo:
            return self.error_response("Debes escribir un motivo para cancelar.", 400)

        pedido, error = self._cargar_pedido(pedido_id)
        if error:
            return error

        actualizado, error = self._transicionar(pedido, 'cancelar')
        if error:
            return error
        self.observacion_controller.registrar(
            pedido_id, usuario.get('usuario'), f"🚫 PEDIDO CANCELADO. Motivo: {motivo}"
        )
        return self.success_response(actualizado, "Pedido cancelado.")
