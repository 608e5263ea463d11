import pytest
from unittest.mock import patch
from portal.controllers.solicitud_controller import SolicitudController

SOLICITANTE = {'id': 'u-9', 'usuario': 'jperez', 'rol': 'usuario', 'areadetrabajo': 'Laboratorio'}
COMPRAS = {'id': 'u-c', 'usuario': 'compras1', 'rol': 'compras'}
GERENCIA = {'id': 'u-g', 'usuario': 'gerente', 'rol': 'gerencia'}

# --- Fixtures ---

@pytest.fixture
def mock_dependencies():
    with patch('portal.controllers.solicitud_controller.SolicitudModel') as MockSolicitudModel, \
         patch('portal.controllers.solicitud_controller.AprobacionModel') as MockAprobacionModel:
        mocks = {
            "model": MockSolicitudModel.return_value,
            "aprobacion_model": MockAprobacionModel.return_value,
        }
        mocks['model'].update.side_effect = lambda solicitud_id, cambios: {'success': True, 'data': {'id': solicitud_id, **cambios}}
        mocks['aprobacion_model'].upsert_por_solicitud.return_value = {'success': True, 'data': {}}
        yield mocks

@pytest.fixture
def solicitud_controller(mock_dependencies):
    controller = SolicitudController()
    for key, mock_instance in mock_dependencies.items():
        setattr(controller, key, mock_instance)
    yield controller

def _solicitud(mocks, **datos):
    mocks['model'].find_by_id.return_value = {'success': True, 'data': {'id': 50, **datos}}

# --- Solicitante ---

def test_crear_solicitud_asigna_siguiente_consecutivo(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['model'].find_max_consecutivo.return_value = {'success': True, 'data': 41}
        mock_dependencies['model'].create.side_effect = lambda registro: {'success': True, 'data': {'id': 50, **registro}}

        response, status_code = solicitud_controller.crear_solicitud({
            'area_id': 1, 'tipo_solicitud_id': 2, 'prioridad_id': 3, 'descripcion': 'Fuga en la marmita'
        }, SOLICITANTE)

        assert status_code == 201
        registro = mock_dependencies['model'].create.call_args[0][0]
        assert registro['consecutivo'] == 42
        assert registro['estado_id'] == 1
        assert registro['usuario_id'] == 'jperez'
        assert registro['area_solicitante'] == 'Laboratorio'
        assert registro['justificacion'] == ''
        mock_dependencies['model'].find_max_consecutivo.assert_called_once_with(1)

@pytest.mark.parametrize("data", [
    {'tipo_solicitud_id': 2, 'prioridad_id': 3, 'descripcion': 'x'},
    {'area_id': 1, 'tipo_solicitud_id': 2, 'prioridad_id': 3, 'descripcion': ''},
    {'area_id': 'uno', 'tipo_solicitud_id': 2, 'prioridad_id': 3, 'descripcion': 'x'},
])
def test_crear_solicitud_datos_invalidos(app, solicitud_controller, mock_dependencies, data):
    with app.test_request_context():
        response, status_code = solicitud_controller.crear_solicitud(data, SOLICITANTE)
        assert status_code == 400
        mock_dependencies['model'].create.assert_not_called()

def test_calificar_solicitud_finalizada(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=14, usuario_id='jperez')
        response, status_code = solicitud_controller.calificar(50, {'calificacion': ' Excelente ', 'comentario': 'Rápido'}, SOLICITANTE)
        assert status_code == 200
        cambios = mock_dependencies['model'].update.call_args[0][1]
        assert cambios == {'calificacion': 'Excelente', 'comentario': 'Rápido', 'estado_id': 15}

def test_calificar_solicitud_no_finalizada(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=13, usuario_id='jperez')
        response, status_code = solicitud_controller.calificar(50, {'calificacion': 'Buena'}, SOLICITANTE)
        assert status_code == 409
        mock_dependencies['model'].update.assert_not_called()

def test_calificar_solicitud_ajena(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=14, usuario_id='otro')
        response, status_code = solicitud_controller.calificar(50, {'calificacion': 'Buena'}, SOLICITANTE)
        assert status_code == 403

def test_calificar_sin_calificacion(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        response, status_code = solicitud_controller.calificar(50, {}, SOLICITANTE)
        assert status_code == 400
        mock_dependencies['model'].find_by_id.assert_not_called()

# --- Mantenimiento ---

def test_avanzar_mantenimiento_pendiente_a_en_proceso(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=1, area_id=app.config['AREA_MANTENIMIENTO_ID'])
        response, status_code = solicitud_controller.avanzar_mantenimiento(50)
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 13}

def test_avanzar_mantenimiento_finalizar_exige_accion(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=13, area_id=app.config['AREA_MANTENIMIENTO_ID'])
        response, status_code = solicitud_controller.avanzar_mantenimiento(50, '  ')
        assert status_code == 400
        mock_dependencies['model'].update.assert_not_called()

def test_avanzar_mantenimiento_finaliza(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=13, area_id=app.config['AREA_MANTENIMIENTO_ID'])
        response, status_code = solicitud_controller.avanzar_mantenimiento(50, 'Cambio de empaque')
        assert status_code == 200
        cambios = mock_dependencies['model'].update.call_args[0][1]
        assert cambios['estado_id'] == 14
        assert cambios['accion_realizada'] == 'Cambio de empaque'
        assert cambios['fecha_cierre'] is not None

def test_avanzar_mantenimiento_ya_finalizada(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=14, area_id=app.config['AREA_MANTENIMIENTO_ID'])
        response, status_code = solicitud_controller.avanzar_mantenimiento(50, 'x')
        assert status_code == 409

def test_avanzar_mantenimiento_otra_area(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=1, area_id=app.config['AREA_COMPRAS_ID'])
        response, status_code = solicitud_controller.avanzar_mantenimiento(50)
        assert status_code == 400

# --- Gestión de Calidad ---

def test_asignar_consecutivo(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=1, area_id=4)
        mock_dependencies['model'].find_max_consecutivo.return_value = {'success': True, 'data': 7}
        response, status_code = solicitud_controller.asignar_consecutivo(50)
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {
            'consecutivo': 8, 'estado_id': 17, 'accion_realizada': 'Consecutivo asignado: 8'
        }

def test_historial_consecutivos_excluye_sin_consecutivo(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['model'].find_all_con_relaciones.return_value = {'success': True, 'data': [
            {'id': 1, 'consecutivo': 3}, {'id': 2, 'consecutivo': None}
        ]}
        response, status_code = solicitud_controller.historial_consecutivos()
        assert [s['id'] for s in response['data']] == [1]

# --- Circuito de compras ---

def test_enviar_gerencia_registra_comentario_de_compras(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=17)
        response, status_code = solicitud_controller.enviar_gerencia(50, COMPRAS, 'Tres cotizaciones adjuntas')
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 18}
        solicitud_id, payload = mock_dependencies['aprobacion_model'].upsert_por_solicitud.call_args[0]
        assert solicitud_id == 50
        assert payload['aprobador_id'] == 'compras1'
        assert payload['comentario_compras'] == 'Tres cotizaciones adjuntas'
        assert payload['estado_aprobacion'] is None

def test_solicitar_correccion(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=17)
        response, status_code = solicitud_controller.solicitar_correccion(50, COMPRAS, 'Falta la cantidad')
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 16}
        payload = mock_dependencies['aprobacion_model'].upsert_por_solicitud.call_args[0][1]
        assert payload['estado_aprobacion'] == 'DEVUELTO'

def test_solicitar_correccion_sin_comentario(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        response, status_code = solicitud_controller.solicitar_correccion(50, COMPRAS, '')
        assert status_code == 400
        mock_dependencies['model'].find_by_id.assert_not_called()

def test_aprobar_gerencia_primera_y_segunda_vez(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=18)
        response, status_code = solicitud_controller.aprobar(50, GERENCIA)
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 23}

        _solicitud(mock_dependencies, estado_id=24)
        response, status_code = solicitud_controller.aprobar(50, GERENCIA, 'Proveedor aprobado')
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 19}
        payload = mock_dependencies['aprobacion_model'].upsert_por_solicitud.call_args[0][1]
        assert payload['estado_aprobacion'] == 'APROBADO'
        assert payload['comentario_gerencia'] == 'Proveedor aprobado'

def test_aprobar_estado_incorrecto(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=17)
        response, status_code = solicitud_controller.aprobar(50, GERENCIA)
        assert status_code == 409
        mock_dependencies['aprobacion_model'].upsert_por_solicitud.assert_not_called()

def test_rechazar_vuelve_a_compras(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=24)
        response, status_code = solicitud_controller.rechazar(50, GERENCIA, 'Precio elevado')
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 17}
        payload = mock_dependencies['aprobacion_model'].upsert_por_solicitud.call_args[0][1]
        assert payload['estado_aprobacion'] == 'RECHAZADO'
        assert payload['comentario_gerencia'] == 'Precio elevado'

def test_rechazar_sin_motivo(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        response, status_code = solicitud_controller.rechazar(50, GERENCIA, None)
        assert status_code == 400

def test_enviar_orden_revision(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=23)
        response, status_code = solicitud_controller.enviar_orden_revision(50, COMPRAS, 'OC-2024-15')
        assert status_code == 200
        assert mock_dependencies['model'].update.call_args[0][1] == {'estado_id': 24}
        payload = mock_dependencies['aprobacion_model'].upsert_por_solicitud.call_args[0][1]
        assert payload['comentario_compras'] == 'Orden Generada: OC-2024-15'

def test_ejecutar_compra_finaliza(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=19)
        response, status_code = solicitud_controller.ejecutar_compra(50, COMPRAS, 'Factura 889')
        assert status_code == 200
        cambios = mock_dependencies['model'].update.call_args[0][1]
        assert cambios['estado_id'] == 14
        assert cambios['accion_realizada'] == 'Factura 889'
        assert 'fecha_cierre' in cambios

def test_aprobacion_no_se_registra_si_falla_la_actualizacion(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        _solicitud(mock_dependencies, estado_id=18)
        mock_dependencies['model'].update.side_effect = None
        mock_dependencies['model'].update.return_value = {'success': False, 'error': 'timeout'}
        response, status_code = solicitud_controller.aprobar(50, GERENCIA)
        assert status_code == 500
        mock_dependencies['aprobacion_model'].upsert_por_solicitud.assert_not_called()

# --- KPIs ---

def test_kpis_compras(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['model'].count_por_estado.return_value = {'success': True, 'data': {
            1: 2, 17: 1, 18: 1, 24: 2, 23: 1, 19: 1, 16: 1, 14: 3, 15: 1
        }}
        response, status_code = solicitud_controller.kpis_compras()
        assert status_code == 200
        assert response['data'] == {
            'total': 13, 'pendientes': 2, 'revision_compras': 1, 'revision_gerencia': 3,
            'creacion_oc': 1, 'por_comprar': 1, 'devueltas': 1, 'finalizadas': 4,
        }
        mock_dependencies['model'].count_por_estado.assert_called_once_with(app.config['AREA_COMPRAS_ID'])

def test_kpis_mantenimiento(app, solicitud_controller, mock_dependencies):
    with app.test_request_context():
        mock_dependencies['model'].count_por_estado.return_value = {'success': True, 'data': {1: 4, 13: 2, 14: 1}}
        response, status_code = solicitud_controller.kpis_mantenimiento()
        assert response['data'] == {'total': 7, 'pendientes': 4, 'en_proceso': 2, 'finalizadas': 1}
