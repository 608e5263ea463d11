# -*- coding: utf-8 -*-
"""
Módulo centralizado para la gestión de estados en toda la aplicación.
Define constantes para los estados de pedidos de producción, solicitudes y
etapas internas, así como funciones de utilidad para traducir entre la
representación numérica (la que se guarda en `estado_id`) y el nombre legible.
"""

# -----------------------------------------------------------------------------
# ESTADOS DE PEDIDOS DE PRODUCCIÓN (pedidos_produccion.estado_id)
# -----------------------------------------------------------------------------

PEDIDO_PENDIENTE = 1
PEDIDO_REGISTRO_LOTE = 2
PEDIDO_ASIGNACION_FECHAS = 3
PEDIDO_ESPERANDO_MATERIA_PRIMA = 4
PEDIDO_MATERIA_PRIMA_ENTREGADA = 5
PEDIDO_EN_PRODUCCION = 6
PEDIDO_ETAPAS_INTERNAS = 8
PEDIDO_EN_ACONDICIONAMIENTO = 9
PEDIDO_LIBERACION_PT = 10
PEDIDO_ENTREGA_BODEGA = 11
PEDIDO_FINALIZADO = 12
PEDIDO_PENDIENTE_AUTORIZACION = 13
PEDIDO_CANCELADO = 22

PEDIDO_NOMBRES = {
    PEDIDO_PENDIENTE: 'Pendiente',
    PEDIDO_REGISTRO_LOTE: 'Registro de lote',
    PEDIDO_ASIGNACION_FECHAS: 'Asignación de fechas',
    PEDIDO_ESPERANDO_MATERIA_PRIMA: 'Esperando materia prima',
    PEDIDO_MATERIA_PRIMA_ENTREGADA: 'Materia prima entregada',
    PEDIDO_EN_PRODUCCION: 'En producción',
    PEDIDO_ETAPAS_INTERNAS: 'Etapas internas',
    PEDIDO_EN_ACONDICIONAMIENTO: 'En acondicionamiento',
    PEDIDO_LIBERACION_PT: 'Liberación PT',
    PEDIDO_ENTREGA_BODEGA: 'Entrega a bodega',
    PEDIDO_FINALIZADO: 'Finalizado',
    PEDIDO_PENDIENTE_AUTORIZACION: 'Pendiente autorización despacho',
    PEDIDO_CANCELADO: 'Cancelado',
}

# Estados desde los que ya no se admite ninguna transición.
PEDIDO_ESTADOS_FINALES = (PEDIDO_FINALIZADO, PEDIDO_CANCELADO)

# -----------------------------------------------------------------------------
# DEPARTAMENTOS (pedidos_produccion.asignado_a)
# -----------------------------------------------------------------------------

ASIGNADO_PRODUCCION = 'produccion'
ASIGNADO_BODEGA = 'bodega'
ASIGNADO_ACONDICIONAMIENTO = 'acondicionamiento'
ASIGNADO_CONTROL_CALIDAD = 'control_calidad'
ASIGNADO_ATENCION = 'atencion'
ASIGNADO_COMPLETADO = 'completado'

# Valor especial de filtro: pedidos sin departamento asignado.
ASIGNADO_SIN = 'sin'

# -----------------------------------------------------------------------------
# HITOS DEL PEDIDO (columnas de fecha, en orden cronológico del flujo)
# -----------------------------------------------------------------------------

HITOS_PEDIDO = [
    ('fecha_recepcion_cliente', 'Pedido recibido del cliente'),
    ('fecha_ingreso_produccion', 'Ingreso a producción (lote registrado)'),
    ('fecha_solicitud_materias_primas', 'Solicitud de materias primas a bodega'),
    ('fecha_entrega_de_materias_primas_e_insumos', 'Materias primas entregadas'),
    ('fecha_inicio_produccion', 'Inicio de producción'),
    ('fecha_entrada_mb', 'Entrada a microbiología'),
    ('fecha_salida_mb', 'Salida de microbiología'),
    ('fecha_inicio_acondicionamiento', 'Inicio de acondicionamiento'),
    ('fecha_fin_acondicionamiento', 'Fin de acondicionamiento'),
    ('fecha_liberacion_pt', 'Liberación de producto terminado'),
    ('fecha_entrega_bodega', 'Entrega a bodega'),
    ('fecha_entrega_cliente', 'Despacho al cliente'),
]

# -----------------------------------------------------------------------------
# ESTADOS DE SOLICITUDES (solicitudes.estado_id)
# -----------------------------------------------------------------------------

SOL_PENDIENTE = 1
SOL_LIBERADA_MB = 2
SOL_EN_PROCESO = 13
SOL_FINALIZADA = 14
SOL_CALIFICADA = 15
SOL_DEVUELTA = 16
SOL_REVISION_COMPRAS = 17
SOL_REVISION_GERENCIA = 18
SOL_POR_COMPRAR = 19
SOL_CREACION_OC = 23
SOL_REVISION_GERENCIA_OC = 24

SOLICITUD_NOMBRES = {
    SOL_PENDIENTE: 'Pendiente',
    SOL_LIBERADA_MB: 'Liberada',
    SOL_EN_PROCESO: 'En proceso',
    SOL_FINALIZADA: 'Finalizada',
    SOL_CALIFICADA: 'Calificada',
    SOL_DEVUELTA: 'Devuelta',
    SOL_REVISION_COMPRAS: 'Revisión compras',
    SOL_REVISION_GERENCIA: 'Revisión gerencia',
    SOL_POR_COMPRAR: 'Por comprar',
    SOL_CREACION_OC: 'Creación orden de compra',
    SOL_REVISION_GERENCIA_OC: 'Revisión gerencia OC',
}

# Estados de la tabla `aprobaciones`
APROBACION_APROBADO = 'APROBADO'
APROBACION_RECHAZADO = 'RECHAZADO'
APROBACION_DEVUELTO = 'DEVUELTO'

# -----------------------------------------------------------------------------
# ESTADOS DE ETAPAS INTERNAS (pedido_etapas.estado)
# -----------------------------------------------------------------------------

ETAPA_PENDIENTE = 'pendiente'
ETAPA_PENDIENTE_LIBERACION = 'pendiente_liberacion'
ETAPA_EN_REVISION = 'en_revision'
ETAPA_COMPLETADA = 'completada'

ETAPA_NOMBRES = {
    ETAPA_PENDIENTE: 'Pendiente',
    ETAPA_PENDIENTE_LIBERACION: 'Pendiente de liberación',
    ETAPA_EN_REVISION: 'En revisión',
    ETAPA_COMPLETADA: 'Completada',
}

# -----------------------------------------------------------------------------
# FUNCIONES DE UTILIDAD
# -----------------------------------------------------------------------------

def nombre_estado(estado_id) -> str:
    """
    Devuelve el nombre legible de un estado de pedido.
    Si el estado no existe en el catálogo devuelve 'Estado <id>'.
    """
    try:
        return PEDIDO_NOMBRES.get(int(estado_id), f'Estado {estado_id}')
    except (TypeError, ValueError):
        return f'Estado {estado_id}'

def nombre_estado_solicitud(estado_id) -> str:
    try:
        return SOLICITUD_NOMBRES.get(int(estado_id), f'Estado {estado_id}')
    except (TypeError, ValueError):
        return f'Estado {estado_id}'

def traducir_a_int(nombre: str):
    """
    Traduce el nombre legible de un estado de pedido a su `estado_id`.
    La comparación ignora mayúsculas. Devuelve None si no existe.
    """
    if not nombre:
        return None
    buscado = str(nombre).strip().lower()
    for estado_id, etiqueta in PEDIDO_NOMBRES.items():
        if etiqueta.lower() == buscado:
            return estado_id
    return None

def es_estado_final(estado_id) -> bool:
    try:
        return int(estado_id) in PEDIDO_ESTADOS_FINALES
    except (TypeError, ValueError):
        return False
