"""
Normalización de roles y menú de navegación por rol.

Los roles se guardan en `usuarios.rol` como texto libre; históricamente
aparecen en minúsculas, capitalizados o en mayúsculas, y Control de Calidad
figura tanto como `controlcalidad` como `control_calidad`.
"""
from typing import List, Optional

ROL_PRODUCCION = 'produccion'
ROL_BODEGA = 'bodega'
ROL_ACONDICIONAMIENTO = 'acondicionamiento'
ROL_CONTROL_CALIDAD = 'controlcalidad'
ROL_MICROBIOLOGIA = 'microbiologia'
ROL_ATENCION = 'atencion'
ROL_COMERCIAL = 'comercial'
ROL_GERENCIA = 'gerencia'
ROL_COMPRAS = 'compras'
ROL_MANTENIMIENTO = 'mantenimiento'
ROL_GESTION_CALIDAD = 'gestioncalidad'
ROL_DIRECCION_TECNICA = 'direcciontecnica'
ROL_PLANEACION = 'planeacion'
ROL_USUARIO = 'usuario'

_ALIAS = {
    'control_calidad': ROL_CONTROL_CALIDAD,
    'calidad': ROL_CONTROL_CALIDAD,
    'micro': ROL_MICROBIOLOGIA,
}

def normalizar_rol(rol: Optional[str]) -> Optional[str]:
    """Devuelve el código canónico de un rol (minúsculas, sin espacios, alias resueltos)."""
    if rol is None:
        return None
    limpio = str(rol).strip().lower()
    if not limpio:
        return None
    return _ALIAS.get(limpio, limpio)

def variantes_rol(rol: str) -> List[str]:
    """
    Variantes de escritura con las que un rol puede estar guardado en la tabla
    `usuarios`. Se usan para buscar destinatarios de notificaciones.
    """
    base = str(rol).strip()
    candidatos = [base.lower(), base.capitalize(), base.upper()]
    canonico = normalizar_rol(base)
    if canonico == ROL_CONTROL_CALIDAD:
        candidatos += ['control_calidad', 'Control_calidad', 'CONTROL_CALIDAD',
                       'controlcalidad', 'Controlcalidad', 'CONTROLCALIDAD']
    vistos = []
    for c in candidatos:
        if c not in vistos:
            vistos.append(c)
    return vistos

def roles_liberadores(rol_liberador: Optional[str]) -> List[str]:
    """
    Convierte la columna `rol_liberador` ("micro, calidad") en la lista de roles
    canónicos que deben liberar la etapa.
    """
    if not rol_liberador:
        return []
    roles = []
    for parte in str(rol_liberador).split(','):
        rol = normalizar_rol(parte)
        if rol and rol not in roles:
            roles.append(rol)
    return roles

def rol_coincide(rol_usuario: Optional[str], rol_requerido: Optional[str]) -> bool:
    return normalizar_rol(rol_usuario) is not None and normalizar_rol(rol_usuario) == normalizar_rol(rol_requerido)

# -----------------------------------------------------------------------------
# MENÚ POR ROL
# -----------------------------------------------------------------------------

MENUS = {
    ROL_ATENCION: {
        'title': 'Portal Interno – Atención al Cliente',
        'items': [
            {'to': '/atencion', 'label': 'Registrar Pedido'},
            {'to': '/pedidos-curso', 'label': 'Pedidos en Curso'},
            {'to': '/autorizar-despachos', 'label': 'Autorizar Despachos'},
            {'to': '/calendario', 'label': 'Calendario'},
            {'to': '/pedidos-finalizados', 'label': 'Pedidos Finalizados'},
            {'to': '/consolidado', 'label': 'Consolidado'},
            {'to': '/dashboard', 'label': 'Dashboard'},
        ],
    },
    ROL_PRODUCCION: {
        'title': 'Portal Interno – Producción',
        'items': [
            {'to': '/produccion', 'label': 'Pedidos Asignados'},
            {'to': '/calendario', 'label': 'Calendario'},
            {'to': '/pedidos-finalizados', 'label': 'Finalizados'},
            {'to': '/consolidado', 'label': 'Consolidado'},
            {'to': '/dashboard', 'label': 'Dashboard'},
        ],
    },
    ROL_GERENCIA: {
        'title': 'Portal Interno – Gerencia',
        'items': [
            {'to': '/gerencia', 'label': 'Pedidos en Curso'},
            {'to': '/calendario', 'label': 'Calendario'},
            {'to': '/pedidos-finalizados', 'label': 'Finalizados'},
            {'to': '/gerenciacompras', 'label': 'Compras'},
            {'to': '/gerenciamantenimiento', 'label': 'Mantenimiento'},
            {'to': '/consolidado', 'label': 'Consolidado'},
            {'to': '/dashboard', 'label': 'Dashboard'},
        ],
    },
    ROL_COMPRAS: {
        'title': 'Portal Interno – Compras',
        'items': [
            {'to': '/compras', 'label': 'Gestión Compras'},
            {'to': '/kpis-compras', 'label': 'KPIs'},
        ],
    },
    ROL_BODEGA: {
        'title': 'Portal Interno – Bodega',
        'items': [{'to': '/bodega', 'label': 'Pedidos Pendientes'}],
    },
    ROL_MICROBIOLOGIA: {
        'title': 'Portal Interno – Microbiología',
        'items': [
            {'to': '/microbiologia', 'label': 'Análisis Pendientes'},
            {'to': '/calendario', 'label': 'Calendario'},
        ],
    },
    ROL_MANTENIMIENTO: {
        'title': 'Portal Interno – Mantenimiento',
        'items': [
            {'to': '/mantenimiento', 'label': 'Mantenimiento'},
            {'to': '/kpis-mantenimiento', 'label': 'KPIs'},
        ],
    },
    ROL_ACONDICIONAMIENTO: {
        'title': 'Portal Interno – Acondicionamiento',
        'items': [{'to': '/acondicionamiento', 'label': 'Pedidos Asignados'}],
    },
    ROL_CONTROL_CALIDAD: {
        'title': 'Portal Interno – Control de Calidad',
        'items': [
            {'to': '/controlcalidad', 'label': 'Pendientes'},
            {'to': '/calendario', 'label': 'Calendario'},
        ],
    },
    ROL_GESTION_CALIDAD: {
        'title': 'Portal Interno – Gestión de Calidad',
        'items': [{'to': '/gestioncalidad', 'label': 'Asignar Consecutivos'}],
    },
    ROL_DIRECCION_TECNICA: {
        'title': 'Portal Interno – Dirección Técnica',
        'items': [
            {'to': '/direccion-tecnica', 'label': 'Gestión de Productos'},
            {'to': '/consolidado', 'label': 'Consolidado'},
        ],
    },
    ROL_USUARIO: {
        'title': 'Portal Interno – Usuario',
        'items': [
            {'to': '/usuario/mis-solicitudes', 'label': 'Mis Solicitudes'},
            {'to': '/usuario/crear-solicitud', 'label': 'Hacer Solicitud'},
        ],
    },
    ROL_PLANEACION: {
        'title': 'Portal Interno – Planeación',
        'items': [
            {'to': '/calendario', 'label': 'Calendario'},
            {'to': '/consolidado', 'label': 'Consolidado'},
            {'to': '/dashboard', 'label': 'Dashboard'},
        ],
    },
}

MENU_GENERAL = {'title': 'Portal Interno', 'items': []}

def menu_para_rol(rol: Optional[str]) -> dict:
    return MENUS.get(normalizar_rol(rol), MENU_GENERAL)
