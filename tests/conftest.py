import pytest
from unittest.mock import MagicMock, patch
from portal import create_app


@pytest.fixture(autouse=True)
def mock_database():
    """Ningún modelo abre una conexión real a Supabase durante las pruebas."""
    with patch('portal.models.base_model.Database') as MockDatabase:
        MockDatabase.return_value.client = MagicMock()
        yield MockDatabase


@pytest.fixture
def app():
    app = create_app()
    app.config.update({
        "TESTING": True,
        "JWT_SECRET_KEY": "test-secret",
        "JWT_COOKIE_CSRF_PROTECT": False,
        "BYPASS_PERMISSIONS": False,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
