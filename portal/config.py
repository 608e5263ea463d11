import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv(dotenv_path='credenciales.env') | load_dotenv(dotenv_path='.env')

class Config:

    # Supabase Configuration
    SUPABASE_URL = os.getenv('SUPABASE_URL')
    SUPABASE_KEY = os.getenv('SUPABASE_KEY')

    # Flask Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)

    DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 't')
    TESTING = os.getenv('FLASK_TESTING', 'False').lower() in ('true', '1', 't')
    USE_RELOADER = DEBUG

    # Zona horaria de la planta
    TIMEZONE = os.getenv('TIMEZONE', 'America/Bogota')

    # Pagination
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    # JWT Configuration
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=8)
    JWT_TOKEN_LOCATION = ['cookies']
    JWT_COOKIE_PATH = '/'
    JWT_COOKIE_CSRF_PROTECT = os.getenv('JWT_COOKIE_CSRF_PROTECT', 'True').lower() in ('true', '1', 't')

    # Notificaciones: contrato de sondeo con el cliente
    NOTIFICACIONES_POLL_SEGUNDOS = 60
    NOTIFICACIONES_RECARGA_SEGUNDOS = 5
    NOTIFICACIONES_LIMITE = 20

    # Reglas de negocio de pedidos
    DIAS_HABILES_ENTREGA = int(os.getenv('DIAS_HABILES_ENTREGA', 28))
    PORCENTAJE_DESPERDICIO = float(os.getenv('PORCENTAJE_DESPERDICIO', 0.03))

    # Áreas de solicitudes
    AREA_MANTENIMIENTO_ID = int(os.getenv('AREA_MANTENIMIENTO_ID', 1))
    AREA_COMPRAS_ID = int(os.getenv('AREA_COMPRAS_ID', 4))

    # Sincronización periódica de métricas del dashboard
    SYNC_METRICAS_ENABLED = os.getenv('SYNC_METRICAS_ENABLED', 'False').lower() in ('true', '1', 't')
    SYNC_METRICAS_MINUTOS = int(os.getenv('SYNC_METRICAS_MINUTOS', 30))

    # Solo para entornos de prueba: desactiva la verificación de permisos por rol
    BYPASS_PERMISSIONS = os.getenv('BYPASS_PERMISSIONS', 'False').lower() in ('true', '1', 't')
