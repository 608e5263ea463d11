import pytest
from datetime import date, datetime
import pytz
from portal.services.flujo_pedido import (
    TRANSICIONES,
    TransicionInvalida,
    siguiente_estado,
    validar_transicion,
    rol_puede_ejecutar,
    construir_actualizacion,
    acciones_disponibles,
    etapas_completas,
    calcular_desperdicio,
    datos_registro_lote,
    historial_pedido,
)
from portal.utils import estados

AHORA = pytz.timezone('America/Bogota').localize(datetime(2024, 3, 4, 9, 30, 0))


class TestTransiciones:
    @pytest.mark.parametrize("accion, desde, hacia", [
        ('aceptar', 1, 2),
        ('registrar_lote', 2, 3),
        ('asignar_fechas', 3, 4),
        ('entregar_materias_primas', 4, 5),
        ('devolver_a_bodega', 5, 4),
        ('iniciar_produccion', 5, 6),
        ('enviar_a_microbiologia', 6, 8),
        ('omitir_microbiologia', 6, 8),
        ('iniciar_acondicionamiento', 8, 9),
        ('finalizar_acondicionamiento', 9, 10),
        ('liberar_pt', 10, 11),
        ('solicitar_autorizacion', 11, 13),
        ('despachar', 13, 12),
    ])
    def test_siguiente_estado(self, accion, desde, hacia):
        assert siguiente_estado(accion, desde) == hacia

    def test_siguiente_estado_acepta_texto_numerico(self):
        assert siguiente_estado('aceptar', '1') == 2

    def test_origen_invalido(self):
        with pytest.raises(TransicionInvalida) as exc:
            siguiente_estado('iniciar_produccion', 4)
        assert exc.value.accion == 'iniciar_produccion'
        assert exc.value.estado_actual == 4
        assert 'Esperando materia prima' in str(exc.value)

    def test_accion_inexistente(self):
        with pytest.raises(TransicionInvalida):
            siguiente_estado('volar', 1)

    @pytest.mark.parametrize("estado", [e for e in estados.PEDIDO_NOMBRES if e not in (12, 22)])
    def test_cancelar_desde_cualquier_estado_no_final(self, estado):
        assert siguiente_estado('cancelar', estado) == estados.PEDIDO_CANCELADO

    @pytest.mark.parametrize("estado", [12, 22])
    def test_estados_finales_no_admiten_transiciones(self, estado):
        assert acciones_disponibles({'id': 1, 'estado_id': estado}) == []

    def test_autorizar_despacho_requiere_atencion(self):
        pedido = {'id': 7, 'estado_id': 13, 'asignado_a': 'bodega'}
        with pytest.raises(TransicionInvalida):
            validar_transicion('autorizar_despacho', pedido)
        pedido['asignado_a'] = 'atencion'
        assert validar_transicion('autorizar_despacho', pedido)['asignado_a'] == 'bodega'

    def test_despachar_requiere_autorizacion_previa(self):
        pedido = {'id': 7, 'estado_id': 13, 'asignado_a': 'atencion'}
        with pytest.raises(TransicionInvalida):
            construir_actualizacion('despachar', pedido, ahora=AHORA)


class TestConstruirActualizacion:
    def test_registrar_lote_estampa_ingreso(self):
        update = construir_actualizacion('registrar_lote', {'estado_id': 2}, extra={'lote': 55}, ahora=AHORA)
        assert update['estado_id'] == 3
        assert update['asignado_a'] == 'produccion'
        assert update['fecha_ingreso_produccion'] == AHORA.isoformat()
        assert update['lote'] == 55

    def test_devolver_a_bodega_limpia_fecha_entrega_mp(self):
        update = construir_actualizacion('devolver_a_bodega', {'estado_id': 5}, ahora=AHORA)
        assert update['estado_id'] == 4
        assert update['asignado_a'] == 'bodega'
        assert 'fecha_entrega_de_materias_primas_e_insumos' in update
        assert update['fecha_entrega_de_materias_primas_e_insumos'] is None

    def test_liberar_pt_estampa_liberacion_y_entrega_bodega(self):
        update = construir_actualizacion('liberar_pt', {'estado_id': 10}, ahora=AHORA)
        assert update['estado_id'] == 11
        assert update['asignado_a'] == 'bodega'
        assert update['fecha_liberacion_pt'] == '2024-03-04'
        assert update['fecha_entrega_bodega'] == AHORA.isoformat()

    def test_despachar_finaliza(self):
        update = construir_actualizacion('despachar', {'estado_id': 13, 'asignado_a': 'bodega'}, ahora=AHORA)
        assert update == {
            'estado_id': 12,
            'asignado_a': 'completado',
            'fecha_entrega_cliente': '2024-03-04',
        }

    def test_cancelar_no_asigna_departamento(self):
        update = construir_actualizacion('cancelar', {'estado_id': 6}, ahora=AHORA)
        assert update == {'estado_id': 22, 'asignado_a': None}


class TestRolesYAcciones:
    def test_rol_puede_ejecutar(self):
        assert rol_puede_ejecutar('liberar_pt', 'Control_Calidad')
        assert rol_puede_ejecutar('iniciar_acondicionamiento', 'acondicionamiento')
        assert not rol_puede_ejecutar('liberar_pt', 'produccion')
        assert not rol_puede_ejecutar('inexistente', 'produccion')

    def test_acciones_disponibles_por_rol(self):
        pedido = {'id': 1, 'estado_id': 5}
        assert acciones_disponibles(pedido, 'produccion') == ['devolver_a_bodega', 'iniciar_produccion', 'cancelar']
        assert acciones_disponibles(pedido, 'bodega') == []

    def test_acondicionamiento_oculto_con_etapas_pendientes(self):
        pedido = {'id': 1, 'estado_id': 8}
        etapas = [{'estado': 'completada'}, {'estado': 'pendiente'}]
        assert acciones_disponibles(pedido, 'produccion', etapas) == ['cancelar']

    @pytest.mark.parametrize("etapas", [None, [], [{'estado': 'completada'}, {'estado': 'completada'}]])
    def test_acondicionamiento_disponible_con_flujo_completo(self, etapas):
        pedido = {'id': 1, 'estado_id': 8}
        assert 'iniciar_acondicionamiento' in acciones_disponibles(pedido, 'produccion', etapas)
        assert etapas_completas(etapas)

    def test_iniciar_acondicionamiento_rechaza_etapa_en_revision(self):
        with pytest.raises(TransicionInvalida) as exc:
            construir_actualizacion('iniciar_acondicionamiento', {'id': 4, 'estado_id': 8},
                                    ahora=AHORA, etapas=[{'estado': 'en_revision'}])
        assert exc.value.accion == 'iniciar_acondicionamiento'
        assert '#4' in str(exc.value)

    def test_todas_las_transiciones_declaran_roles(self):
        for accion, transicion in TRANSICIONES.items():
            assert transicion['roles'], accion


class TestRegistroLote:
    def test_calcular_desperdicio(self):
        assert calcular_desperdicio(1000) == 30
        assert calcular_desperdicio('500', 0.1) == 50

    def test_datos_registro_lote(self):
        datos = datos_registro_lote('123.9', 456.2, '2026-01-31', '1000.7', hoy=date(2024, 1, 5))
        assert datos['op'] == 123
        assert datos['lote'] == 456
        assert datos['tamano_lote'] == 1000
        assert datos['porcentaje_desperdicio'] == 30
        assert datos['fecha_vencimiento'] == '2026-01-31'
        assert datos['fecha_maxima_entrega'] == '2024-02-14'

    def test_datos_registro_lote_valor_no_numerico(self):
        with pytest.raises(ValueError):
            datos_registro_lote('abc', 1, '2026-01-31', 100, hoy=date(2024, 1, 5))


def test_historial_pedido_mas_reciente_primero():
    pedido = {
        'fecha_recepcion_cliente': '2024-01-02',
        'fecha_ingreso_produccion': '2024-01-05T10:00:00-05:00',
        'fecha_inicio_produccion': None,
        'fecha_entrega_cliente': '2024-02-20',
    }
    historial = historial_pedido(pedido)
    assert [e['campo'] for e in historial] == [
        'fecha_entrega_cliente', 'fecha_ingreso_produccion', 'fecha_recepcion_cliente'
    ]
    assert historial[0]['detalle'] == 'Despacho al cliente'
    assert '_orden' not in historial[0]
