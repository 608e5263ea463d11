import pytest
from portal.utils.estados import (
    traducir_a_int,
    nombre_estado,
    nombre_estado_solicitud,
    es_estado_final,
    PEDIDO_NOMBRES,
    SOLICITUD_NOMBRES,
    PEDIDO_FINALIZADO,
    PEDIDO_CANCELADO,
)


class TestEstados:
    @pytest.mark.parametrize("estado_int, estado_str", PEDIDO_NOMBRES.items())
    def test_traducir_a_entero(self, estado_int, estado_str):
        assert traducir_a_int(estado_str) == estado_int

    @pytest.mark.parametrize("estado_int, estado_str", PEDIDO_NOMBRES.items())
    def test_nombre_estado(self, estado_int, estado_str):
        assert nombre_estado(estado_int) == estado_str

    @pytest.mark.parametrize("estado_int, estado_str", SOLICITUD_NOMBRES.items())
    def test_nombre_estado_solicitud(self, estado_int, estado_str):
        assert nombre_estado_solicitud(estado_int) == estado_str

    def test_traducir_ignora_mayusculas_y_espacios(self):
        assert traducir_a_int('  finalizado ') == PEDIDO_FINALIZADO
        assert traducir_a_int('CANCELADO') == PEDIDO_CANCELADO

    @pytest.mark.parametrize("valor", [None, '', 'Inexistente'])
    def test_traducir_desconocido(self, valor):
        assert traducir_a_int(valor) is None

    def test_nombre_estado_desconocido(self):
        assert nombre_estado(99) == 'Estado 99'
        assert nombre_estado('abc') == 'Estado abc'
        assert nombre_estado('12') == 'Finalizado'

    @pytest.mark.parametrize("estado, esperado", [(12, True), (22, True), ('22', True), (1, False), (13, False), (None, False)])
    def test_es_estado_final(self, estado, esperado):
        assert es_estado_final(estado) is esperado
