"""
Motor del ciclo de vida de un pedido de producción.

Toda transición de `estado_id` pasa por la tabla TRANSICIONES: cada acción
declara los estados de origen admitidos, el estado destino, el departamento
que queda a cargo (`asignado_a`), las columnas de hito que se estampan con la
fecha actual, las que se limpian y los roles que pueden ejecutarla.
Este módulo no accede a la base de datos; construye los cambios que los
controladores persisten.
"""
import logging
import math
from typing import Dict, List, Optional, Any

from portal.utils import estados
from portal.utils.roles import normalizar_rol
from portal.utils.date_utils import get_now_local, get_today_local, sumar_dias_habiles, parse_fecha

logger = logging.getLogger(__name__)

# Columnas de hito que se guardan solo con la fecha (sin hora).
FECHAS_SOLO_DIA = {
    'fecha_recepcion_cliente',
    'fecha_solicitud_materias_primas',
    'fecha_entrega_de_materias_primas_e_insumos',
    'fecha_entrega_cliente',
    'fecha_entrada_mb',
    'fecha_inicio_acondicionamiento',
    'fecha_fin_acondicionamiento',
    'fecha_liberacion_pt',
}

_ESTADOS_CANCELABLES = tuple(
    e for e in estados.PEDIDO_NOMBRES if e not in estados.PEDIDO_ESTADOS_FINALES
)

TRANSICIONES = {
    'aceptar': {
        'desde': (estados.PEDIDO_PENDIENTE,),
        'hacia': estados.PEDIDO_REGISTRO_LOTE,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': (),
        'limpiar': (),
        'roles': ('produccion',),
    },
    'registrar_lote': {
        'desde': (estados.PEDIDO_REGISTRO_LOTE,),
        'hacia': estados.PEDIDO_ASIGNACION_FECHAS,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': ('fecha_ingreso_produccion',),
        'limpiar': (),
        'roles': ('produccion',),
    },
    'asignar_fechas': {
        'desde': (estados.PEDIDO_ASIGNACION_FECHAS,),
        'hacia': estados.PEDIDO_ESPERANDO_MATERIA_PRIMA,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': (),
        'limpiar': (),
        'roles': ('produccion',),
    },
    'entregar_materias_primas': {
        'desde': (estados.PEDIDO_ESPERANDO_MATERIA_PRIMA,),
        'hacia': estados.PEDIDO_MATERIA_PRIMA_ENTREGADA,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': ('fecha_entrega_de_materias_primas_e_insumos',),
        'limpiar': (),
        'roles': ('bodega',),
    },
    'devolver_a_bodega': {
        'desde': (estados.PEDIDO_MATERIA_PRIMA_ENTREGADA,),
        'hacia': estados.PEDIDO_ESPERANDO_MATERIA_PRIMA,
        'asignado_a': estados.ASIGNADO_BODEGA,
        'fechas': (),
        'limpiar': ('fecha_entrega_de_materias_primas_e_insumos',),
        'roles': ('produccion',),
    },
    'iniciar_produccion': {
        'desde': (estados.PEDIDO_MATERIA_PRIMA_ENTREGADA,),
        'hacia': estados.PEDIDO_EN_PRODUCCION,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': ('fecha_inicio_produccion',),
        'limpiar': (),
        'roles': ('produccion',),
    },
    'enviar_a_microbiologia': {
        'desde': (estados.PEDIDO_EN_PRODUCCION,),
        'hacia': estados.PEDIDO_ETAPAS_INTERNAS,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': ('fecha_entrada_mb',),
        'limpiar': (),
        'roles': ('produccion',),
    },
    'omitir_microbiologia': {
        'desde': (estados.PEDIDO_EN_PRODUCCION,),
        'hacia': estados.PEDIDO_ETAPAS_INTERNAS,
        'asignado_a': estados.ASIGNADO_PRODUCCION,
        'fechas': ('fecha_entrada_mb',),
        'limpiar': (),
        'roles': ('produccion',),
    },
    'iniciar_acondicionamiento': {
        'desde': (estados.PEDIDO_ETAPAS_INTERNAS,),
        'hacia': estados.PEDIDO_EN_ACONDICIONAMIENTO,
        'asignado_a': estados.ASIGNADO_ACONDICIONAMIENTO,
        'fechas': ('fecha_inicio_acondicionamiento',),
        'limpiar': (),
        'roles': ('produccion', 'acondicionamiento'),
        'requiere_flujo_completo': True,
    },
    'finalizar_acondicionamiento': {
        'desde': (estados.PEDIDO_EN_ACONDICIONAMIENTO,),
        'hacia': estados.PEDIDO_LIBERACION_PT,
        'asignado_a': estados.ASIGNADO_CONTROL_CALIDAD,
        'fechas': ('fecha_fin_acondicionamiento',),
        'limpiar': (),
        'roles': ('acondicionamiento',),
    },
    'liberar_pt': {
        'desde': (estados.PEDIDO_LIBERACION_PT,),
        'hacia': estados.PEDIDO_ENTREGA_BODEGA,
        'asignado_a': estados.ASIGNADO_BODEGA,
        'fechas': ('fecha_liberacion_pt', 'fecha_entrega_bodega'),
        'limpiar': (),
        'roles': ('controlcalidad',),
    },
    'solicitar_autorizacion': {
        'desde': (estados.PEDIDO_ENTREGA_BODEGA,),
        'hacia': estados.PEDIDO_PENDIENTE_AUTORIZACION,
        'asignado_a': estados.ASIGNADO_ATENCION,
        'fechas': (),
        'limpiar': (),
        'roles': ('bodega',),
    },
    'autorizar_despacho': {
        'desde': (estados.PEDIDO_PENDIENTE_AUTORIZACION,),
        'hacia': estados.PEDIDO_PENDIENTE_AUTORIZACION,
        'asignado_a': estados.ASIGNADO_BODEGA,
        'fechas': (),
        'limpiar': (),
        'roles': ('atencion',),
        'requiere_asignado': estados.ASIGNADO_ATENCION,
    },
    'despachar': {
        'desde': (estados.PEDIDO_PENDIENTE_AUTORIZACION,),
        'hacia': estados.PEDIDO_FINALIZADO,
        'asignado_a': estados.ASIGNADO_COMPLETADO,
        'fechas': ('fecha_entrega_cliente',),
        'limpiar': (),
        'roles': ('bodega',),
        'requiere_asignado': estados.ASIGNADO_BODEGA,
    },
    'cancelar': {
        'desde': _ESTADOS_CANCELABLES,
        'hacia': estados.PEDIDO_CANCELADO,
        'asignado_a': None,
        'fechas': (),
        'limpiar': (),
        'roles': ('produccion', 'atencion', 'gerencia'),
    },
}


class TransicionInvalida(Exception):
    """La acción no puede aplicarse al pedido en su estado actual."""

    def __init__(self, mensaje: str, accion: Optional[str] = None, estado_actual: Any = None):
        super().__init__(mensaje)
        self.accion = accion
        self.estado_actual = estado_actual


def _estado_int(estado) -> Optional[int]:
    try:
        return int(estado)
    except (TypeError, ValueError):
        return None


def obtener_transicion(accion: str) -> Dict:
    if accion not in TRANSICIONES:
        raise TransicionInvalida(f"La acción '{accion}' no existe.", accion=accion)
    return TRANSICIONES[accion]


def siguiente_estado(accion: str, estado_actual) -> int:
    """
    Devuelve el estado destino de `accion` partiendo de `estado_actual`.
    Lanza TransicionInvalida si la acción no admite ese origen.
    """
    transicion = obtener_transicion(accion)
    estado = _estado_int(estado_actual)
    if estado not in transicion['desde']:
        raise TransicionInvalida(
            f"No se puede ejecutar '{accion}' con el pedido en estado "
            f"'{estados.nombre_estado(estado_actual)}'.",
            accion=accion,
            estado_actual=estado_actual,
        )
    return transicion['hacia']


def etapas_completas(etapas: Optional[List[Dict]]) -> bool:
    """Sin etapas no hay nada que esperar; con etapas, todas deben estar completadas."""
    return all(e.get('estado') == estados.ETAPA_COMPLETADA for e in etapas or [])


def validar_transicion(accion: str, pedido: Dict, etapas: Optional[List[Dict]] = None) -> Dict:
    """
    Comprueba origen, departamento asignado y, para las acciones que lo
    exigen, que las etapas internas del pedido estén completadas.
    Devuelve la definición de la transición si es válida.
    """
    transicion = obtener_transicion(accion)
    siguiente_estado(accion, pedido.get('estado_id'))
    requerido = transicion.get('requiere_asignado')
    if requerido and pedido.get('asignado_a') != requerido:
        raise TransicionInvalida(
            f"El pedido #{pedido.get('id')} debe estar asignado a '{requerido}' para '{accion}'.",
            accion=accion,
            estado_actual=pedido.get('estado_id'),
        )
    if transicion.get('requiere_flujo_completo') and not etapas_completas(etapas):
        raise TransicionInvalida(
            f"Faltan etapas internas por completar o liberar en el pedido #{pedido.get('id')}.",
            accion=accion,
            estado_actual=pedido.get('estado_id'),
        )
    return transicion


def rol_puede_ejecutar(accion: str, rol: Optional[str]) -> bool:
    transicion = TRANSICIONES.get(accion)
    if not transicion:
        return False
    return normalizar_rol(rol) in transicion['roles']


def _valor_fecha(columna: str, ahora):
    if columna in FECHAS_SOLO_DIA:
        return ahora.date().isoformat()
    return ahora.isoformat()


def construir_actualizacion(accion: str, pedido: Dict, extra: Optional[Dict] = None, ahora=None,
                            etapas: Optional[List[Dict]] = None) -> Dict:
    """
    Construye el diccionario de cambios para aplicar `accion` al pedido:
    nuevo estado, departamento, hitos estampados, columnas limpiadas y
    cualquier dato adicional de la acción (`extra`).
    """
    transicion = validar_transicion(accion, pedido, etapas)
    ahora = ahora or get_now_local()

    update = {
        'estado_id': transicion['hacia'],
        'asignado_a': transicion['asignado_a'],
    }
    for columna in transicion['fechas']:
        update[columna] = _valor_fecha(columna, ahora)
    for columna in transicion['limpiar']:
        update[columna] = None
    if extra:
        update.update(extra)
    return update


def acciones_disponibles(pedido: Dict, rol: Optional[str] = None, etapas: Optional[List[Dict]] = None) -> List[str]:
    """
    Acciones aplicables ahora al pedido, opcionalmente filtradas por rol.
    `etapas` son las etapas internas del pedido, si las tiene.
    """
    disponibles = []
    for accion in TRANSICIONES:
        try:
            validar_transicion(accion, pedido, etapas)
        except TransicionInvalida:
            continue
        if rol is None or rol_puede_ejecutar(accion, rol):
            disponibles.append(accion)
    return disponibles


# -----------------------------------------------------------------------------
# REGLAS DE NEGOCIO DEL REGISTRO DE LOTE
# -----------------------------------------------------------------------------

def calcular_desperdicio(tamano_lote, porcentaje: float = 0.03) -> int:
    return int(round(float(tamano_lote) * porcentaje))


def datos_registro_lote(op, lote, fecha_vencimiento, tamano_lote,
                        dias_habiles: int = 28, porcentaje_desperdicio: float = 0.03,
                        hoy=None) -> Dict:
    """
    Datos que acompañan la transición `registrar_lote`: los valores numéricos
    se truncan a entero y se calculan el desperdicio y la fecha máxima de entrega.
    """
    hoy = hoy or get_today_local()
    return {
        'op': math.floor(float(op)),
        'lote': math.floor(float(lote)),
        'fecha_vencimiento': fecha_vencimiento,
        'tamano_lote': math.floor(float(tamano_lote)),
        'porcentaje_desperdicio': calcular_desperdicio(tamano_lote, porcentaje_desperdicio),
        'fecha_maxima_entrega': sumar_dias_habiles(dias_habiles, hoy).isoformat(),
    }


# -----------------------------------------------------------------------------
# HISTORIAL
# -----------------------------------------------------------------------------

def historial_pedido(pedido: Dict) -> List[Dict]:
    """
    Reconstruye la línea de tiempo del pedido a partir de las columnas de hito
    que no son nulas. Más reciente primero.
    """
    eventos = []
    for columna, etiqueta in estados.HITOS_PEDIDO:
        valor = pedido.get(columna)
        fecha = parse_fecha(valor)
        if fecha is None:
            continue
        eventos.append({'campo': columna, 'detalle': etiqueta, 'fecha': valor, '_orden': fecha.replace(tzinfo=None)})
    eventos.sort(key=lambda e: e['_orden'], reverse=True)
    for evento in eventos:
        evento.pop('_orden')
    return eventos
