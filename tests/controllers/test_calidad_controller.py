import pytest
from unittest.mock import patch, ANY
from portal.controllers.calidad_controller import CalidadController, MicrobiologiaController, evaluar_solicitudes_micro

USUARIO_CC = {'id': 'u-cc', 'usuario': 'calidad1', 'rol': 'controlcalidad'}
USUARIO_MB = {'id': 'u-mb', 'usuario': 'micro1', 'rol': 'microbiologia'}

# --- Fixtures ---

@pytest.fixture
def mock_dependencies():
    with patch('portal.controllers.calidad_controller.PedidoModel') as MockPedidoModel, \
         patch('portal.controllers.calidad_controller.SolicitudModel') as MockSolicitudModel, \
         patch('portal.controllers.calidad_controller.AreaModel') as MockAreaModel, \
         patch('portal.controllers.calidad_controller.EtapaLiberacionModel') as MockLiberacionModel, \
         patch('portal.controllers.calidad_controller.ResponsableLiberacionModel') as MockResponsableModel, \
         patch('portal.controllers.calidad_controller.EtapaController') as MockEtapaController, \
         patch('portal.controllers.calidad_controller.NotificacionController') as MockNotificacionController, \
         patch('portal.controllers.calidad_controller.ObservacionController') as MockObservacionController:

        mocks = {
            "pedido_model": MockPedidoModel.return_value, "solicitud_model": MockSolicitudModel.return_value,
            "area_model": MockAreaModel.return_value, "liberacion_model": MockLiberacionModel.return_value,
            "responsable_model": MockResponsableModel.return_value,
            "etapa_controller": MockEtapaController.return_value,
            "notificacion_controller": MockNotificacionController.return_value,
            "observacion_controller": MockObservacionController.return_value,
        }
        mocks['pedido_model'].update_estado.side_effect = lambda pedido_id, cambios: {'success': True, 'data': {'id': pedido_id, **cambios}}
        mocks['area_model'].find_por_nombre_parcial.return_value = {'success': True, 'data': {'id': 9, 'nombre': 'Microbiología'}}
        yield mocks

def _con_mocks(controller, mocks):
    for key, mock_instance in mocks.items():
        setattr(controller, key, mock_instance)
    return controller

@pytest.fixture
def calidad_controller(mock_dependencies):
    yield _con_mocks(CalidadController(), mock_dependencies)

@pytest.fixture
def micro_controller(mock_dependencies):
    yield _con_mocks(MicrobiologiaController(), mock_dependencies)

# --- Evaluación del análisis microbiológico ---

class TestEvaluarSolicitudesMicro:
    def test_sin_solicitudes_bloquea(self):
        resultado = evaluar_solicitudes_micro({'id': 1, 'productos': {'forma_farmaceutica': 'Jarabe'}}, [])
        assert resultado['liberado'] is False
        assert 'Envasado' in resultado['mensaje']

    def test_solicitud_relevante_liberada(self):
        solicitudes = [{'consecutivo': '1', 'descripcion': 'Pedido #1\nMuestreo de envasado', 'estado_id': 2}]
        resultado = evaluar_solicitudes_micro({'id': 1, 'productos': {'forma_farmaceutica': 'Jarabe'}}, solicitudes)
        assert resultado['liberado'] is True

    def test_esteril_busca_esterilidad_y_exige_todas_liberadas(self):
        solicitudes = [
            {'consecutivo': 1, 'descripcion': 'Análisis de esterilidad', 'estado_id': 1},
            {'consecutivo': 1, 'descripcion': 'Biocarga pre-filtración', 'estado_id': 2},
            {'consecutivo': 2, 'descripcion': 'Esterilidad de otro pedido', 'estado_id': 2},
        ]
        resultado = evaluar_solicitudes_micro({'id': 1, 'productos': {'forma_farmaceutica': 'Inyectable Estéril'}}, solicitudes)
        assert resultado['liberado'] is False
        assert 'Esterilidad' in resultado['mensaje']

    def test_sin_palabras_clave_usa_todas_las_del_pedido(self):
        solicitudes = [{'consecutivo': 1, 'descripcion': 'Revisión general', 'estado_id': 2}]
        resultado = evaluar_solicitudes_micro({'id': 1, 'productos': {}}, solicitudes)
        assert resultado['liberado'] is True

# --- Control de Calidad ---

def test_liberar_pt(app, calidad_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {
            'success': True, 'data': {'id': 1, 'estado_id': 10, 'productos': {'forma_farmaceutica': 'Jarabe'}}
        }
        mock_dependencies['solicitud_model'].find_all.return_value = {'success': True, 'data': [
            {'id': 5, 'consecutivo': 1, 'descripcion': 'Envasado', 'estado_id': 2}
        ]}

        response, status_code = calidad_controller.liberar_pt(1, USUARIO_CC, {
            'comentario': 'Cumple especificaciones', 'numero_analisis': 'PT-88', 'responsable': 'Q.F. Ruiz'
        })

        assert status_code == 200
        cambios = mock_dependencies['pedido_model'].update_estado.call_args[0][1]
        assert cambios['estado_id'] == 11
        assert cambios['asignado_a'] == 'bodega'
        assert cambios['numero_analisis_pt'] == 'PT-88'
        assert cambios['responsable_liberacion_pt'] == 'Q.F. Ruiz'
        assert 'fecha_liberacion_pt' in cambios
        assert 'fecha_entrega_bodega' in cambios
        mock_dependencies['observacion_controller'].registrar.assert_called_once_with(
            1, 'calidad1', "✅ LIBERACIÓN PT: Cumple especificaciones")
        mock_dependencies['notificacion_controller'].notificar_roles.assert_called_once_with(
            ['bodega'], "Pedido Liberado por Calidad", ANY, 1, ANY)

def test_liberar_pt_bloqueado_por_microbiologia(app, calidad_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {
            'success': True, 'data': {'id': 1, 'estado_id': 10, 'productos': {'forma_farmaceutica': 'Jarabe'}}
        }
        mock_dependencies['solicitud_model'].find_all.return_value = {'success': True, 'data': [
            {'id': 5, 'consecutivo': 1, 'descripcion': 'Envasado', 'estado_id': 1}
        ]}
        response, status_code = calidad_controller.liberar_pt(1, USUARIO_CC, {})
        assert status_code == 409
        mock_dependencies['pedido_model'].update_estado.assert_not_called()

def test_liberar_pt_sin_area_micro_no_bloquea(app, calidad_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['area_model'].find_por_nombre_parcial.return_value = {'success': False, 'error': 'No encontrada'}
        mock_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {
            'success': True, 'data': {'id': 1, 'estado_id': 10, 'productos': {}}
        }
        response, status_code = calidad_controller.liberar_pt(1, USUARIO_CC, None)
        assert status_code == 200
        mock_dependencies['observacion_controller'].registrar.assert_not_called()

def test_liberar_pt_estado_incorrecto(app, calidad_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['area_model'].find_por_nombre_parcial.return_value = {'success': False, 'error': 'No encontrada'}
        mock_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {
            'success': True, 'data': {'id': 1, 'estado_id': 9, 'productos': {}}
        }
        response, status_code = calidad_controller.liberar_pt(1, USUARIO_CC, {})
        assert status_code == 409

def test_calidad_delega_etapas_con_su_rol(app, calidad_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['etapa_controller'].liberar_etapa.return_value = ({'success': True}, 200)
        response, status_code = calidad_controller.liberar_etapa(100, USUARIO_CC, {'comentario': 'ok'})
        assert status_code == 200
        mock_dependencies['etapa_controller'].liberar_etapa.assert_called_once_with(100, 'controlcalidad', USUARIO_CC, {'comentario': 'ok'})

def test_historial_calidad_ordenado(app, calidad_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['liberacion_model'].find_liberadas_por_rol.return_value = {'success': True, 'data': [
            {'id': 3, 'created_at': '2024-03-01T10:00:00', 'pedido_etapas': {'pedido_id': 1, 'nombre': 'Envasado'}},
        ]}
        mock_dependencies['pedido_model'].find_liberados_pt.return_value = {'success': True, 'data': [
            {'id': 2, 'fecha_liberacion_pt': '2024-03-05', 'productos': {'articulo': 'Jarabe X'}},
        ]}
        response, status_code = calidad_controller.historial()
        assert status_code == 200
        assert [h['id'] for h in response['data']] == ['pt-2', 'et-lib-3']

# --- Microbiología ---

def test_liberar_solicitud_inicial(app, micro_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['solicitud_model'].find_by_id.return_value = {'success': True, 'data': {'id': 70, 'estado_id': 1, 'consecutivo': 1}}
        mock_dependencies['solicitud_model'].update.return_value = {'success': True, 'data': {'id': 70, 'estado_id': 2}}
        mock_dependencies['pedido_model'].update.return_value = {'success': True, 'data': {}}

        response, status_code = micro_controller.liberar_solicitud(70, USUARIO_MB, {'comentario': 'Sin crecimiento', 'numero_analisis': 'MB-3'})

        assert status_code == 200
        cambios = mock_dependencies['solicitud_model'].update.call_args[0][1]
        assert cambios == {'estado_id': 2, 'accion_realizada': 'Sin crecimiento', 'numero_analisis': 'MB-3'}
        pedido_id, salida = mock_dependencies['pedido_model'].update.call_args[0]
        assert pedido_id == 1
        assert 'fecha_salida_mb' in salida
        mock_dependencies['notificacion_controller'].notificar_roles.assert_called_once_with(
            ['produccion', 'controlcalidad'], "Liberación MB Inicial", ANY, 1, ANY)

def test_liberar_solicitud_ya_gestionada(app, micro_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['solicitud_model'].find_by_id.return_value = {'success': True, 'data': {'id': 70, 'estado_id': 2, 'consecutivo': 1}}
        response, status_code = micro_controller.liberar_solicitud(70, USUARIO_MB)
        assert status_code == 409
        mock_dependencies['solicitud_model'].update.assert_not_called()

def test_liberar_solicitud_sin_pedido_no_toca_pedidos(app, micro_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['solicitud_model'].find_by_id.return_value = {'success': True, 'data': {'id': 71, 'estado_id': 1, 'consecutivo': None}}
        mock_dependencies['solicitud_model'].update.return_value = {'success': True, 'data': {'id': 71}}
        response, status_code = micro_controller.liberar_solicitud(71, USUARIO_MB, {})
        assert status_code == 200
        assert mock_dependencies['solicitud_model'].update.call_args[0][1]['accion_realizada'] == "Análisis microbiológico inicial aprobado."
        mock_dependencies['pedido_model'].update.assert_not_called()

def test_microbiologia_etapas_pendientes_usa_su_rol(app, micro_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['etapa_controller'].etapas_pendientes_por_rol.return_value = ({'success': True, 'data': []}, 200)
        micro_controller.etapas_pendientes()
        mock_dependencies['etapa_controller'].etapas_pendientes_por_rol.assert_called_once_with('microbiologia')
