import pytest
from datetime import date
from unittest.mock import patch
from portal.controllers.calendario_controller import CalendarioController

HOY = date(2024, 3, 10)

@pytest.fixture
def mock_model():
    with patch('portal.controllers.calendario_controller.TareaProduccionModel') as MockTareaModel:
        yield MockTareaModel.return_value

@pytest.fixture
def calendario_controller(mock_model):
    controller = CalendarioController()
    controller.model = mock_model
    with patch('portal.controllers.calendario_controller.get_today_local', return_value=HOY):
        yield controller

def test_tareas_del_mes_agrupa_por_dia(app, calendario_controller, mock_model):
    with app.test_request_context():
        mock_model.find_entre_fechas.return_value = {'success': True, 'data': [
            {'id': 1, 'fecha': '2024-03-12', 'titulo': 'Limpieza de reactor'},
            {'id': 2, 'fecha': '2024-03-12', 'titulo': 'Calibración'},
            {'id': 3, 'fecha': '2024-03-20', 'titulo': 'Auditoría'},
        ]}

        response, status_code = calendario_controller.tareas_del_mes()

        assert status_code == 200
        assert (response['data']['year'], response['data']['month']) == (2024, 3)
        assert [t['id'] for t in response['data']['por_dia']['2024-03-12']] == [1, 2]
        mock_model.find_entre_fechas.assert_called_once_with(date(2024, 3, 1), date(2024, 3, 31))

def test_tareas_del_mes_invalido(app, calendario_controller, mock_model):
    with app.test_request_context():
        response, status_code = calendario_controller.tareas_del_mes(2024, 13)
        assert status_code == 400
        mock_model.find_entre_fechas.assert_not_called()

def test_crear_tarea(app, calendario_controller, mock_model):
    with app.test_request_context():
        mock_model.create.return_value = {'success': True, 'data': {'id': 8}}

        response, status_code = calendario_controller.crear_tarea(
            {'fecha': '2024-03-15', 'titulo': '  Mantenimiento preventivo '}, {'id': 'u-prod'})

        assert status_code == 201
        mock_model.create.assert_called_once_with({
            'fecha': '2024-03-15', 'titulo': 'Mantenimiento preventivo', 'descripcion': '', 'created_by': 'u-prod'
        })

def test_crear_tarea_fecha_pasada(app, calendario_controller, mock_model):
    with app.test_request_context():
        response, status_code = calendario_controller.crear_tarea({'fecha': '2024-03-01', 'titulo': 'Tarde'})
        assert status_code == 400
        mock_model.create.assert_not_called()

def test_crear_tarea_sin_titulo(app, calendario_controller, mock_model):
    with app.test_request_context():
        response, status_code = calendario_controller.crear_tarea({'fecha': '2024-03-15'})
        assert status_code == 400
