import logging
from typing import Dict, List, Optional

from portal.controllers.base_controller import BaseController
from portal.controllers.pedido_controller import PedidoController
from portal.models.pedido import PedidoModel
from portal.schemas.pedido_schema import FiltrosPedidoSchema
from portal.utils import estados
from portal.utils.date_utils import diferencia_dias, get_today_local, parse_fecha

logger = logging.getLogger(__name__)

# (columna de métrica, fecha inicial, fecha final)
METRICAS = (
    ('produccion_planificada', 'fecha_ingreso_produccion', 'fecha_maxima_entrega'),
    ('produccion_real', 'fecha_ingreso_produccion', 'fecha_entrega_bodega'),
    ('tiempo_entrega_cliente', 'fecha_ingreso_produccion', 'fecha_entrega_bodega'),
    ('dias_analisis_mb', 'fecha_entrada_mb', 'fecha_salida_mb'),
    ('dias_acondicionamiento', 'fecha_inicio_acondicionamiento', 'fecha_fin_acondicionamiento'),
)

ETAPAS_TIEMPO = (
    ('fecha_ingreso_produccion', 'Ingreso a Producción'),
    ('fecha_inicio_produccion', 'Inicio Producción'),
    ('fecha_entrada_mb', 'Entrada MB'),
    ('fecha_salida_mb', 'Salida MB'),
    ('fecha_inicio_acondicionamiento', 'Inicio Acondicionamiento'),
    ('fecha_fin_acondicionamiento', 'Fin Acondicionamiento'),
    ('fecha_liberacion_pt', 'Liberación PT'),
    ('fecha_entrega_bodega', 'Entrega Bodega'),
)

FILTROS_CONSOLIDADO = ('id', 'cliente', 'producto', 'prioridad', 'estado', 'fecha')


def calcular_metricas(pedido: Dict) -> Dict:
    """
    Métricas en días que aún están vacías en el pedido y ya se pueden
    calcular. Devuelve solo las columnas nuevas (vacío si no hay cambios).
    """
    cambios = {}
    for columna, inicio, fin in METRICAS:
        if pedido.get(columna) is not None:
            continue
        dias = diferencia_dias(pedido.get(inicio), pedido.get(fin))
        if dias is not None:
            cambios[columna] = dias
    return cambios


def _fecha(valor):
    dt = parse_fecha(valor)
    return dt.date() if dt else None


def _promedio(valores: List[float]) -> Optional[float]:
    if not valores:
        return None
    return round(sum(valores) / len(valores), 1)


def _top(conteo: Dict, n: int = 10) -> List[Dict]:
    orden = sorted(conteo.items(), key=lambda par: par[1], reverse=True)[:n]
    return [{'nombre': nombre, 'total': total} for nombre, total in orden]


class DashboardController(BaseController):
    """Indicadores de gestión y consolidado de pedidos."""

    def __init__(self):
        super().__init__()
        self.pedido_model = PedidoModel()
        self.pedido_controller = PedidoController()

    def sincronizar_metricas(self, pedidos: Optional[List[Dict]] = None) -> Dict:
        """
        Calcula y persiste las métricas faltantes. Sin lista explícita recorre
        todos los pedidos.
        """
        if pedidos is None:
            result = self.pedido_model.find_all()
            if not result.get('success'):
                return result
            pedidos = result['data']

        filas = []
        for pedido in pedidos:
            cambios = calcular_metricas(pedido)
            if cambios:
                filas.append({'id': pedido['id'], **cambios})

        if not filas:
            return {'success': True, 'data': {'actualizados': 0, 'errores': []}}

        logger.info(f"Sincronizando métricas de {len(filas)} pedidos")
        result = self.pedido_model.update_metricas(filas)
        if not result.get('success'):
            logger.error(f"Errores al sincronizar métricas: {result.get('data', {}).get('errores')}")
        return result

    def _pedidos_filtrados(self, filtros: Optional[Dict]):
        datos, error = self.validar(FiltrosPedidoSchema(), filtros)
        if error:
            return None, error
        result = self.pedido_controller.buscar_pedidos(datos)
        if not result.get('success'):
            return None, self.error_response(result.get('error'), 500)
        return result['data'], None

    def resumen(self, filtros: Optional[Dict] = None) -> tuple:
        pedidos, error = self._pedidos_filtrados(filtros)
        if error:
            return error

        sincronizacion = self.sincronizar_metricas(pedidos)
        if not sincronizacion.get('success'):
            logger.warning("La sincronización de métricas del resumen terminó con errores.")

        hoy = get_today_local()
        finalizados = [p for p in pedidos if p.get('estado_id') == estados.PEDIDO_FINALIZADO]
        en_curso = [p for p in pedidos if (p.get('estado_id') or 0) < estados.PEDIDO_FINALIZADO]
        vencidos = [
            p for p in pedidos
            if p.get('estado_id') != estados.PEDIDO_FINALIZADO
            and _fecha(p.get('fecha_maxima_entrega')) and _fecha(p.get('fecha_maxima_entrega')) < hoy
        ]
        tarde = [
            p for p in finalizados
            if _fecha(p.get('fecha_entrega_bodega')) and _fecha(p.get('fecha_maxima_entrega'))
            and _fecha(p.get('fecha_entrega_bodega')) > _fecha(p.get('fecha_maxima_entrega'))
        ]

        tiempos_totales = [
            d for d in (diferencia_dias(p.get('fecha_ingreso_produccion'), p.get('fecha_entrega_bodega'))
                        for p in finalizados)
            if d is not None
        ]

        por_estado, por_asignado, por_producto, por_cliente, demoras = {}, {}, {}, {}, {}
        for p in pedidos:
            nombre = (p.get('estados') or {}).get('nombre') or estados.nombre_estado(p.get('estado_id'))
            por_estado[nombre] = por_estado.get(nombre, 0) + 1
            asignado = p.get('asignado_a') or 'Sin asignar'
            por_asignado[asignado] = por_asignado.get(asignado, 0) + 1
            articulo = (p.get('productos') or {}).get('articulo') or 'Sin producto'
            por_producto[articulo] = por_producto.get(articulo, 0) + 1
            cliente = (p.get('clientes') or {}).get('nombre') or 'Sin cliente'
            por_cliente[cliente] = por_cliente.get(cliente, 0) + 1
        for p in tarde:
            articulo = (p.get('productos') or {}).get('articulo') or 'Sin producto'
            demoras[articulo] = demoras.get(articulo, 0) + 1

        return self.success_response({
            'total': len(pedidos),
            'finalizados': len(finalizados),
            'en_curso': len(en_curso),
            'vencidos': len(vencidos),
            'finalizados_tarde': len(tarde),
            'tiempo_promedio_total': _promedio(tiempos_totales),
            'promedios': {
                columna: _promedio([
                    d for d in (diferencia_dias(p.get(inicio), p.get(fin)) for p in pedidos) if d is not None
                ])
                for columna, inicio, fin in METRICAS
            },
            'tiempo_por_etapa': self._tiempo_por_etapa(pedidos),
            'por_estado': por_estado,
            'por_asignado': por_asignado,
            'top_productos': _top(por_producto),
            'top_clientes': _top(por_cliente),
            'top_demoras': _top(demoras),
            'pedidos': pedidos[:100],
        })

    @staticmethod
    def _tiempo_por_etapa(pedidos: List[Dict]) -> List[Dict]:
        """Promedio de días entre hitos consecutivos; se ignoran diferencias negativas."""
        tiempos = []
        for (anterior, _), (actual, etiqueta) in zip(ETAPAS_TIEMPO, ETAPAS_TIEMPO[1:]):
            valores = []
            for p in pedidos:
                inicio, fin = parse_fecha(p.get(anterior)), parse_fecha(p.get(actual))
                if inicio is None or fin is None:
                    continue
                dias = (fin.replace(tzinfo=None) - inicio.replace(tzinfo=None)).total_seconds() / 86400
                if dias >= 0:
                    valores.append(dias)
            tiempos.append({'etapa': etiqueta, 'dias_promedio': _promedio(valores) or 0})
        return tiempos

    @staticmethod
    def _coincide_columnas(pedido: Dict, columnas: Dict) -> bool:
        valores = {
            'id': str(pedido.get('id') or ''),
            'cliente': (pedido.get('clientes') or {}).get('nombre') or '',
            'producto': (pedido.get('productos') or {}).get('articulo') or '',
            'prioridad': pedido.get('prioridad') or '',
            'estado': (pedido.get('estados') or {}).get('nombre') or '',
            'fecha': str(pedido.get('fecha_recepcion_cliente') or ''),
        }
        return all(
            str(filtro).strip().lower() in valores[columna].lower()
            for columna, filtro in columnas.items()
            if filtro
        )

    def consolidado(self, filtros: Optional[Dict] = None, page: int = 1, page_size: Optional[int] = None) -> tuple:
        """Listado completo de pedidos con filtro por columna y paginación."""
        filtros = dict(filtros or {})
        columnas = {c: filtros.pop(c) for c in FILTROS_CONSOLIDADO if c in filtros}

        pedidos, error = self._pedidos_filtrados(filtros)
        if error:
            return error

        pedidos = [p for p in pedidos if self._coincide_columnas(p, columnas)]
        page = max(int(page or 1), 1)
        page_size = min(max(int(page_size or 20), 1), 100)
        return self.success_response(self.paginate_results(pedidos, page, page_size))
