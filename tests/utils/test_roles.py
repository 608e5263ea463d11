import pytest
from portal.utils.roles import (
    normalizar_rol,
    variantes_rol,
    roles_liberadores,
    rol_coincide,
    menu_para_rol,
    MENU_GENERAL,
    MENUS,
)


class TestRoles:
    @pytest.mark.parametrize("rol, esperado", [
        ('Produccion', 'produccion'),
        (' BODEGA ', 'bodega'),
        ('control_calidad', 'controlcalidad'),
        ('Calidad', 'controlcalidad'),
        ('micro', 'microbiologia'),
        ('', None),
        (None, None),
    ])
    def test_normalizar_rol(self, rol, esperado):
        assert normalizar_rol(rol) == esperado

    def test_variantes_rol_sin_duplicados(self):
        assert variantes_rol('bodega') == ['bodega', 'Bodega', 'BODEGA']

    def test_variantes_rol_control_calidad_incluye_guion_bajo(self):
        variantes = variantes_rol('controlcalidad')
        assert 'control_calidad' in variantes
        assert 'CONTROLCALIDAD' in variantes
        assert len(variantes) == len(set(variantes))

    def test_roles_liberadores(self):
        assert roles_liberadores('micro, calidad') == ['microbiologia', 'controlcalidad']
        assert roles_liberadores('calidad,control_calidad') == ['controlcalidad']
        assert roles_liberadores(None) == []

    def test_rol_coincide(self):
        assert rol_coincide('Control_Calidad', 'calidad')
        assert not rol_coincide('microbiologia', 'calidad')
        assert not rol_coincide(None, None)

    def test_menu_para_rol(self):
        assert menu_para_rol('ATENCION') is MENUS['atencion']
        assert menu_para_rol('desconocido') == MENU_GENERAL
        assert menu_para_rol(None) == MENU_GENERAL
