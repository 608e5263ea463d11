import pytest
import pandas as pd
from unittest.mock import patch, ANY
from portal.controllers.pedido_controller import PedidoController

USUARIO = {'id': 'u-1', 'usuario': 'atencion1', 'rol': 'atencion'}

# --- Fixtures ---

@pytest.fixture
def mock_main_dependencies():
    with patch('portal.controllers.pedido_controller.PedidoModel') as MockPedidoModel, \
         patch('portal.controllers.pedido_controller.ProductoModel') as MockProductoModel, \
         patch('portal.controllers.pedido_controller.ClienteModel') as MockClienteModel, \
         patch('portal.controllers.pedido_controller.ObservacionModel') as MockObservacionModel, \
         patch('portal.controllers.pedido_controller.NotificacionController') as MockNotificacionController, \
         patch('portal.controllers.pedido_controller.ObservacionController') as MockObservacionController, \
         patch('portal.controllers.pedido_controller.EtapaController') as MockEtapaController:

        mocks = {
            "pedido_model": MockPedidoModel.return_value, "producto_model": MockProductoModel.return_value,
            "cliente_model": MockClienteModel.return_value, "observacion_model": MockObservacionModel.return_value,
            "notificacion_controller": MockNotificacionController.return_value,
            "observacion_controller": MockObservacionController.return_value,
            "etapa_controller": MockEtapaController.return_value,
        }
        mocks['producto_model'].find_by_id.return_value = {'success': True, 'data': {'referencia': '1234', 'articulo': 'Jarabe X'}}
        mocks['cliente_model'].find_by_id.return_value = {'success': True, 'data': {'id': 3, 'nombre': 'Droguería Central'}}
        mocks['pedido_model'].update_estado.side_effect = lambda pedido_id, cambios: {'success': True, 'data': {'id': pedido_id, **cambios}}
        yield mocks

@pytest.fixture
def pedido_controller(mock_main_dependencies):
    controller = PedidoController()
    for key, mock_instance in mock_main_dependencies.items():
        setattr(controller, key, mock_instance)
    yield controller

# --- Registro ---

def test_crear_pedido_exitoso(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].create.return_value = {'success': True, 'data': {'id': 10, 'estado_id': 1}}

        response, status_code = pedido_controller.crear_pedido(
            {'referencia': ' 1234 ', 'cliente_id': 3, 'cantidad': 500, 'observaciones': 'Urgente para feria'}, USUARIO)

        assert status_code == 201
        assert response['success']
        nuevo = mock_main_dependencies['pedido_model'].create.call_args[0][0]
        assert nuevo['referencia'] == '1234'
        assert nuevo['estado_id'] == 1
        assert nuevo['prioridad'] == 'Bajo'
        assert 'asignado_a' not in nuevo
        mock_main_dependencies['observacion_controller'].registrar.assert_called_once_with(10, 'atencion1', 'Urgente para feria')
        mock_main_dependencies['notificacion_controller'].notificar_roles.assert_called_once_with(
            ['produccion', 'gerencia'], "Nuevo Pedido Registrado", "Pedido #10 - Droguería Central", 10, ANY)

def test_crear_pedido_sin_observaciones_no_registra_bitacora(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].create.return_value = {'success': True, 'data': {'id': 11}}
        response, status_code = pedido_controller.crear_pedido({'referencia': '1234', 'cliente_id': 3, 'cantidad': 1}, USUARIO)
        assert status_code == 201
        mock_main_dependencies['observacion_controller'].registrar.assert_not_called()

@pytest.mark.parametrize("data", [
    {'referencia': '1234', 'cliente_id': 3, 'cantidad': 0},
    {'referencia': '1234', 'cliente_id': 3, 'cantidad': 'diez'},
    {'cliente_id': 3, 'cantidad': 5},
    {'referencia': '1234', 'cantidad': 5},
    {'referencia': '1234', 'cliente_id': 3, 'cantidad': 5, 'prioridad': 'Crítica'},
])
def test_crear_pedido_datos_invalidos(app, pedido_controller, mock_main_dependencies, data):
    with app.test_request_context():
        response, status_code = pedido_controller.crear_pedido(data, USUARIO)
        assert status_code == 400
        assert not response['success']
        mock_main_dependencies['pedido_model'].create.assert_not_called()

def test_crear_pedido_producto_inexistente(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['producto_model'].find_by_id.return_value = {'success': False, 'error': 'No encontrado'}
        response, status_code = pedido_controller.crear_pedido({'referencia': '999', 'cliente_id': 3, 'cantidad': 5}, USUARIO)
        assert status_code == 404
        mock_main_dependencies['pedido_model'].create.assert_not_called()

# --- Carga masiva ---

def test_previsualizar_carga_masiva_detecta_referencias(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        df = pd.DataFrame({
            'Concepto': ['Jarabe X (01234)', 'Sin referencia', 'Crema Z (777)', 'Gel (1234)'],
            'Cantidad': [100, 50, 20, 0],
        })
        mock_main_dependencies['producto_model'].find_all.return_value = {
            'success': True, 'data': [{'referencia': '1234', 'articulo': 'Jarabe X'}]
        }
        with patch('portal.controllers.pedido_controller.pd.read_excel', return_value=df):
            response, status_code = pedido_controller.previsualizar_carga_masiva(object())

        assert status_code == 200
        items = response['data']
        assert len(items) == 2
        assert items[0]['referencia'] == '1234'
        assert items[0]['encontrado'] is True
        assert items[0]['cantidad'] == 100
        assert items[0]['fila'] == 2
        assert items[1]['encontrado'] is False
        assert items[1]['articulo'] == 'Ref: 777 (No encontrada)'

def test_previsualizar_sin_filas_validas(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        df = pd.DataFrame({'Concepto': ['Nada'], 'Cantidad': [3]})
        mock_main_dependencies['producto_model'].find_all.return_value = {'success': True, 'data': []}
        with patch('portal.controllers.pedido_controller.pd.read_excel', return_value=df):
            response, status_code = pedido_controller.previsualizar_carga_masiva(object())
        assert status_code == 400

def test_previsualizar_archivo_ilegible(app, pedido_controller):
    with app.test_request_context():
        with patch('portal.controllers.pedido_controller.pd.read_excel', side_effect=ValueError('formato')):
            response, status_code = pedido_controller.previsualizar_carga_masiva(object())
        assert status_code == 400

def _catalogo(*referencias):
    def buscar(valor, campo=None):
        if valor in referencias:
            return {'success': True, 'data': {'referencia': valor, 'articulo': 'Jarabe X'}}
        return {'success': False, 'error': 'Registro no encontrado'}
    return buscar

def test_crear_pedidos_masivos_acepta_filas_de_la_previsualizacion(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        df = pd.DataFrame({'Concepto': ['Jarabe X (01234)'], 'Cantidad': [100]})
        mock_main_dependencies['producto_model'].find_all.return_value = {
            'success': True, 'data': [{'referencia': '1234', 'articulo': 'Jarabe X'}]
        }
        with patch('portal.controllers.pedido_controller.pd.read_excel', return_value=df):
            vista_previa, _ = pedido_controller.previsualizar_carga_masiva(object())
        filas = [dict(fila, cliente_id=3) for fila in vista_previa['data']]
        mock_main_dependencies['pedido_model'].create.return_value = {'success': True, 'data': {'id': 30}}

        response, status_code = pedido_controller.crear_pedidos_masivos(filas, USUARIO)

        assert status_code == 201
        assert response['data']['ids'] == [30]
        nuevo = mock_main_dependencies['pedido_model'].create.call_args[0][0]
        assert nuevo['referencia'] == '1234'
        assert nuevo['cantidad'] == 100
        assert 'fila' not in nuevo

def test_crear_pedidos_masivos_verifica_producto_ignorando_encontrado(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['producto_model'].find_by_id.side_effect = _catalogo('1234')
        items = [{'referencia': 'NO-EXISTE', 'cliente_id': 3, 'cantidad': 1, 'encontrado': True}]

        response, status_code = pedido_controller.crear_pedidos_masivos(items, USUARIO)

        assert status_code == 400
        mock_main_dependencies['producto_model'].find_by_id.assert_called_once_with('NO-EXISTE', 'referencia')
        mock_main_dependencies['pedido_model'].create.assert_not_called()

def test_crear_pedidos_masivos_rechaza_referencia_no_encontrada(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['producto_model'].find_by_id.side_effect = _catalogo('1234')
        items = [
            {'referencia': '1234', 'cliente_id': 3, 'cantidad': 10, 'encontrado': True},
            {'referencia': '777', 'cliente_id': 3, 'cantidad': 10, 'encontrado': False},
        ]
        response, status_code = pedido_controller.crear_pedidos_masivos(items, USUARIO)
        assert status_code == 400
        mock_main_dependencies['pedido_model'].create.assert_not_called()

def test_crear_pedidos_masivos_requiere_cliente(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        items = [{'referencia': '1234', 'cliente_id': None, 'cantidad': 10, 'encontrado': True}]
        response, status_code = pedido_controller.crear_pedidos_masivos(items, USUARIO)
        assert status_code == 400
        mock_main_dependencies['pedido_model'].create.assert_not_called()

def test_crear_pedidos_masivos_exitoso(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].create.side_effect = [
            {'success': True, 'data': {'id': 20}},
            {'success': True, 'data': {'id': 21}},
        ]
        items = [
            {'referencia': '1234', 'cliente_id': 3, 'cantidad': 10, 'encontrado': True, 'articulo': 'Jarabe X'},
            {'referencia': '1234', 'cliente_id': 4, 'cantidad': 5, 'encontrado': True, 'prioridad': 'Alto'},
        ]
        response, status_code = pedido_controller.crear_pedidos_masivos(items, USUARIO)
        assert status_code == 201
        assert response['data']['creados'] == 2
        assert response['data']['ids'] == [20, 21]
        assert mock_main_dependencies['notificacion_controller'].notificar_roles.call_count == 2

# --- Consultas ---

def test_pedidos_en_curso_incluye_etapa_activa(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_all_con_relaciones.return_value = {
            'success': True, 'data': [{'id': 1, 'estado_id': 8}, {'id': 2, 'estado_id': 4}]
        }
        mock_main_dependencies['etapa_controller'].etapas_activas.return_value = {'success': True, 'data': {1: 'Envasado'}}

        response, status_code = pedido_controller.pedidos_en_curso({})

        assert status_code == 200
        filtros = mock_main_dependencies['pedido_model'].find_all_con_relaciones.call_args[0][0]
        assert filtros['estado_id_lt'] == 13
        assert filtros['estado_id'] == ('neq', 12)
        mock_main_dependencies['etapa_controller'].etapas_activas.assert_called_once_with([1])
        assert response['data'][0]['etapa_activa'] == 'Envasado'
        assert response['data'][1]['etapa_activa'] is None

def test_listar_pedidos_filtro_texto_y_sin_asignar(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_all_con_relaciones.return_value = {
            'success': True, 'data': [
                {'id': 1, 'productos': {'articulo': 'Jarabe X'}, 'clientes': {'nombre': 'Central'}},
                {'id': 2, 'productos': {'articulo': 'Crema Z'}, 'clientes': {'nombre': 'Norte'}},
            ]
        }
        response, status_code = pedido_controller.listar_pedidos({'texto': 'jarabe', 'asignado_a': 'sin'})
        assert status_code == 200
        assert [p['id'] for p in response['data']] == [1]
        filtros = mock_main_dependencies['pedido_model'].find_all_con_relaciones.call_args[0][0]
        assert filtros == {'asignado_a_is': 'null'}

def test_pedidos_finalizados(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_all_con_relaciones.return_value = {'success': True, 'data': []}
        response, status_code = pedido_controller.pedidos_finalizados({'estado_id': 3})
        assert status_code == 200
        filtros = mock_main_dependencies['pedido_model'].find_all_con_relaciones.call_args[0][0]
        assert filtros['estado_id'] == 12

def test_obtener_detalle(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {
            'success': True, 'data': {'id': 5, 'estado_id': 5, 'fecha_recepcion_cliente': '2024-01-02'}
        }
        mock_main_dependencies['observacion_model'].find_by_pedido.return_value = {'success': True, 'data': [{'observacion': 'ok'}]}
        mock_main_dependencies['etapa_controller']._etapas_con_liberaciones.return_value = {'success': True, 'data': []}

        response, status_code = pedido_controller.obtener_detalle(5, 'produccion')

        assert status_code == 200
        detalle = response['data']
        assert detalle['estado'] == 'Materia prima entregada'
        assert detalle['acciones_disponibles'] == ['devolver_a_bodega', 'iniciar_produccion', 'cancelar']
        assert detalle['historial'][0]['campo'] == 'fecha_recepcion_cliente'

def test_obtener_detalle_oculta_acondicionamiento_con_etapas_pendientes(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {
            'success': True, 'data': {'id': 5, 'estado_id': 8, 'asignado_a': 'produccion'}
        }
        mock_main_dependencies['observacion_model'].find_by_pedido.return_value = {'success': True, 'data': []}
        mock_main_dependencies['etapa_controller']._etapas_con_liberaciones.return_value = {'success': True, 'data': [
            {'id': 1, 'orden': 1, 'estado': 'completada', 'liberaciones': []},
            {'id': 2, 'orden': 2, 'estado': 'en_revision', 'liberaciones': []},
        ]}

        response, status_code = pedido_controller.obtener_detalle(5, 'produccion')

        assert status_code == 200
        assert response['data']['acciones_disponibles'] == ['cancelar']

def test_obtener_detalle_no_encontrado(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_by_id_con_relaciones.return_value = {'success': False, 'error': 'x'}
        response, status_code = pedido_controller.obtener_detalle(99)
        assert status_code == 404

# --- Cancelación ---

def test_cancelar_pedido(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_by_id.return_value = {'success': True, 'data': {'id': 1, 'estado_id': 6}}

        response, status_code = pedido_controller.cancelar_pedido(1, 'Cliente desistió', USUARIO)

        assert status_code == 200
        assert response['data']['estado_id'] == 22
        mock_main_dependencies['observacion_controller'].registrar.assert_called_once_with(
            1, 'atencion1', "🚫 PEDIDO CANCELADO. Motivo: Cliente desistió")

def test_cancelar_pedido_fallido_no_deja_observacion(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_by_id.return_value = {'success': True, 'data': {'id': 1, 'estado_id': 6}}
        mock_main_dependencies['pedido_model'].update_estado.side_effect = None
        mock_main_dependencies['pedido_model'].update_estado.return_value = {'success': False, 'error': 'timeout'}

        response, status_code = pedido_controller.cancelar_pedido(1, 'Cliente desistió', USUARIO)

        assert status_code == 500
        mock_main_dependencies['observacion_controller'].registrar.assert_not_called()

def test_cancelar_pedido_sin_motivo(app, pedido_controller, mock_main_dependencies):
    with app.test_request_context():
        response, status_code = pedido_controller.cancelar_pedido(1, '   ', USUARIO)
        assert status_code == 400
        mock_main_dependencies['pedido_model'].find_by_id.assert_not_called()

@pytest.mark.parametrize("estado", [12, 22])
def test_cancelar_pedido_en_estado_final(app, pedido_controller, mock_main_dependencies, estado):
    with app.test_request_context():
        mock_main_dependencies['pedido_model'].find_by_id.return_value = {'success': True, 'data': {'id': 1, 'estado_id': estado}}
        response, status_code = pedido_controller.cancelar_pedido(1, 'motivo', USUARIO)
        assert status_code == 409
        mock_main_dependencies['pedido_model'].update_estado.assert_not_called()
        mock_main_dependencies['observacion_controller'].registrar.assert_not_called()
