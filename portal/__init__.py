from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager, unset_jwt_cookies, verify_jwt_in_request
from portal.config import Config
import logging
from .json_encoder import CustomJSONProvider
from types import SimpleNamespace

jwt = JWTManager()


@jwt.user_lookup_loader
def user_lookup_callback(_jwt_header, jwt_data):
    """
    Stateless: el usuario se reconstruye desde las claims del token sin
    consultar la base de datos.
    """
    return SimpleNamespace(
        id=jwt_data["sub"],
        usuario=jwt_data.get('usuario'),
        rol=jwt_data.get('rol'),
        areadetrabajo=jwt_data.get('areadetrabajo'),
        correo=jwt_data.get('correo'),
    )


@jwt.expired_token_loader
def expired_token_callback(jwt_header, jwt_payload):
    response = jsonify({'success': False, 'error': 'Tu sesión ha expirado. Por favor, inicia sesión de nuevo.'})
    unset_jwt_cookies(response)
    return response, 401


@jwt.unauthorized_loader
def unauthorized_callback(motivo):
    return jsonify({'success': False, 'error': 'Debes iniciar sesión para continuar.'}), 401


def _register_blueprints(app: Flask):
    """Registra todos los blueprints de la aplicación."""
    from portal.views.main_routes import main_bp
    from portal.views.auth_routes import auth_bp
    from portal.views.pedido_routes import pedidos_bp
    from portal.views.produccion_routes import produccion_bp
    from portal.views.etapa_routes import etapas_bp
    from portal.views.bodega_routes import bodega_bp
    from portal.views.calidad_routes import calidad_bp, microbiologia_bp
    from portal.views.solicitud_routes import solicitudes_bp
    from portal.views.notificacion_routes import notificaciones_bp
    from portal.views.dashboard_routes import dashboard_bp
    from portal.views.catalogo_routes import catalogo_bp
    from portal.views.calendario_routes import calendario_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(pedidos_bp)
    app.register_blueprint(produccion_bp)
    app.register_blueprint(etapas_bp)
    app.register_blueprint(bodega_bp)
    app.register_blueprint(calidad_bp)
    app.register_blueprint(microbiologia_bp)
    app.register_blueprint(solicitudes_bp)
    app.register_blueprint(notificaciones_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(catalogo_bp)
    app.register_blueprint(calendario_bp)


def _register_error_handlers(app: Flask):
    """Registra los manejadores de errores globales."""
    @app.errorhandler(404)
    def not_found(error):
        return {'success': False, 'error': 'Endpoint no encontrado'}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {'success': False, 'error': 'Método no permitido'}, 405

    @app.errorhandler(500)
    def internal_error(error):
        return {'success': False, 'error': 'Error interno del servidor'}, 500


def create_app() -> Flask:
    """
    Factory para crear y configurar la aplicación Flask.
    """
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    app = Flask(__name__)
    app.config.from_object(Config)
    app.json = CustomJSONProvider(app)

    CORS(app, resources={r"/api/*": {"origins": "*"}}, supports_credentials=True)
    jwt.init_app(app)

    _register_blueprints(app)
    _register_error_handlers(app)

    @app.before_request
    def before_request_loader():
        """
        Verifica de forma opcional el token JWT para que `get_current_user()`
        funcione también en rutas no protegidas.
        """
        if request.endpoint and (request.endpoint.startswith('static') or request.blueprint in ('static', 'auth')):
            return
        verify_jwt_in_request(optional=True)

    from portal.scheduler import init_scheduler
    init_scheduler(app)

    return app
