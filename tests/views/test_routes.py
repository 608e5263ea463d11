from unittest.mock import patch
from flask_jwt_extended import create_access_token

def _sesion(app, client, rol, user_id='u-1'):
    with app.app_context():
        token = create_access_token(identity=user_id, additional_claims={
            'usuario': f'{rol}1', 'rol': rol, 'areadetrabajo': None, 'correo': None,
        })
    client.set_cookie('access_token_cookie', token)

def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'

def test_endpoint_inexistente(client):
    response = client.get('/api/no-existe')
    assert response.status_code == 404
    assert response.get_json()['success'] is False

# --- Autenticación y permisos ---

def test_crear_pedido_sin_sesion(client):
    response = client.post('/api/pedidos', json={'producto_id': 1})
    assert response.status_code == 401
    assert response.get_json()['success'] is False

def test_crear_pedido_rol_sin_permiso(app, client):
    _sesion(app, client, 'bodega')
    with patch('portal.views.pedido_routes.PedidoController') as MockPedidoController:
        response = client.post('/api/pedidos', json={'producto_id': 1})
    assert response.status_code == 403
    MockPedidoController.assert_not_called()

def test_crear_pedido_atencion(app, client):
    _sesion(app, client, 'Atencion', user_id='u-at')
    with patch('portal.views.pedido_routes.PedidoController') as MockPedidoController:
        MockPedidoController.return_value.crear_pedido.return_value = ({'success': True, 'data': {'id': 10}}, 201)
        response = client.post('/api/pedidos', json={'producto_id': 1})

    assert response.status_code == 201
    datos, usuario = MockPedidoController.return_value.crear_pedido.call_args[0]
    assert datos == {'producto_id': 1}
    assert usuario['id'] == 'u-at'
    assert usuario['rol'] == 'Atencion'

def test_bypass_de_permisos(app, client):
    app.config['BYPASS_PERMISSIONS'] = True
    _sesion(app, client, 'bodega')
    with patch('portal.views.pedido_routes.PedidoController') as MockPedidoController:
        MockPedidoController.return_value.crear_pedido.return_value = ({'success': True, 'data': {'id': 10}}, 201)
        response = client.post('/api/pedidos', json={'producto_id': 1})
    assert response.status_code == 201

def test_error_inesperado_responde_500(app, client):
    _sesion(app, client, 'atencion')
    with patch('portal.views.pedido_routes.PedidoController') as MockPedidoController:
        MockPedidoController.return_value.crear_pedido.side_effect = RuntimeError("fallo")
        response = client.post('/api/pedidos', json={'producto_id': 1})
    assert response.status_code == 500
    assert response.get_json()['error'] == "Error interno del servidor"

# --- Sesión ---

def test_login_deja_cookie(client):
    usuario = {'id': 'u-1', 'usuario': 'operario1', 'rol': 'produccion', 'areadetrabajo': 'Producción', 'correo': None}
    with patch('portal.views.auth_routes.AuthController') as MockAuthController:
        MockAuthController.return_value.autenticar.return_value = ({'success': True, 'data': usuario}, 200)
        response = client.post('/api/auth/login', json={'usuario': 'operario1', 'contrasena': 'secreto1'})

    assert response.status_code == 200
    cookies = response.headers.getlist('Set-Cookie')
    assert any(c.startswith('access_token_cookie=') for c in cookies)

    me = client.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['data']['usuario'] == 'operario1'
    assert me.get_json()['data']['id'] == 'u-1'

def test_login_fallido_sin_cookie(client):
    with patch('portal.views.auth_routes.AuthController') as MockAuthController:
        MockAuthController.return_value.autenticar.return_value = ({'success': False, 'error': 'Credenciales incorrectas.'}, 401)
        response = client.post('/api/auth/login', json={'usuario': 'x', 'contrasena': 'y'})
    assert response.status_code == 401
    assert not any(c.startswith('access_token_cookie=') for c in response.headers.getlist('Set-Cookie'))

def test_me_sin_sesion(client):
    assert client.get('/api/auth/me').status_code == 401

# --- Notificaciones ---

def test_notificaciones_del_usuario(app, client):
    _sesion(app, client, 'produccion', user_id='u-7')
    with patch('portal.views.notificacion_routes.NotificacionController') as MockNotificacionController:
        MockNotificacionController.return_value.listar.return_value = ({'success': True, 'data': {'notificaciones': []}}, 200)
        response = client.get('/api/notificaciones?desde=2024-03-01T10:00:00')

    assert response.status_code == 200
    MockNotificacionController.return_value.listar.assert_called_once_with('u-7', '2024-03-01T10:00:00')
