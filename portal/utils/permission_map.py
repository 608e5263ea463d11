"""
Este módulo centraliza el mapa de permisos de la aplicación.
Define la relación entre acciones y los roles que pueden realizarlas.

NOTA: El diccionario CANONICAL_PERMISSION_MAP es la única fuente de verdad
para la lógica de permisos basada en roles y acciones. Los roles se expresan
en su código canónico (ver `portal.utils.roles.normalizar_rol`).
"""
from portal.utils.roles import normalizar_rol

CANONICAL_PERMISSION_MAP = {
    # Módulo: Pedidos (consulta general)
    'consultar_pedidos_en_curso': ['atencion', 'gerencia'],
    'consultar_pedidos_finalizados': ['produccion', 'atencion', 'gerencia'],
    'consultar_detalle_pedido': ['produccion', 'bodega', 'acondicionamiento', 'controlcalidad',
                                 'microbiologia', 'atencion', 'gerencia', 'planeacion', 'direcciontecnica'],
    'consultar_consolidado': ['produccion', 'gerencia', 'atencion', 'direcciontecnica', 'planeacion'],
    'consultar_dashboard': ['produccion', 'gerencia', 'atencion', 'planeacion'],
    'registrar_observacion': ['produccion', 'bodega', 'acondicionamiento', 'controlcalidad',
                              'microbiologia', 'atencion', 'gerencia'],

    # Módulo: Atención al cliente
    'registrar_pedido': ['atencion'],
    'cancelar_pedido': ['produccion', 'atencion', 'gerencia'],
    'autorizar_despacho': ['atencion'],

    # Módulo: Producción
    'gestionar_produccion': ['produccion'],
    'gestionar_acondicionamiento': ['acondicionamiento'],

    # Módulo: Bodega
    'gestionar_bodega': ['bodega'],

    # Módulo: Calidad y Microbiología
    'liberar_producto_terminado': ['controlcalidad'],
    'gestionar_microbiologia': ['microbiologia'],

    # Módulo: Solicitudes
    'crear_solicitud': ['usuario', 'produccion', 'bodega', 'acondicionamiento', 'controlcalidad',
                        'microbiologia', 'atencion', 'gerencia', 'compras', 'mantenimiento',
                        'gestioncalidad', 'direcciontecnica', 'planeacion'],
    'gestionar_mantenimiento': ['mantenimiento'],
    'consultar_kpis_mantenimiento': ['mantenimiento', 'gerencia'],
    'asignar_consecutivo': ['gestioncalidad'],
    'gestionar_compras': ['compras'],
    'consultar_kpis_compras': ['compras', 'gerencia'],
    'aprobar_solicitudes': ['gerencia'],

    # Módulo: Catálogo y calendario
    'gestionar_productos': ['direcciontecnica'],
    'consultar_calendario': ['produccion', 'gerencia', 'microbiologia', 'controlcalidad', 'planeacion', 'atencion'],
    'gestionar_calendario': ['produccion', 'gerencia', 'planeacion'],
}

def get_allowed_roles_for_action(accion: str) -> list:
    """Devuelve la lista de roles habilitados para una acción (vacía si no existe)."""
    return CANONICAL_PERMISSION_MAP.get(accion, [])

def tiene_permiso(rol: str, accion: str) -> bool:
    return normalizar_rol(rol) in get_allowed_roles_for_action(accion)

def acciones_para_rol(rol: str) -> list:
    canonico = normalizar_rol(rol)
    return [accion for accion, roles in CANONICAL_PERMISSION_MAP.items() if canonico in roles]
