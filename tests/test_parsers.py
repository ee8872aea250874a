from datetime import date, datetime
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from importacao.parsers import (
    ErroParseNumero,
    linha_lixo,
    mapear_status,
    normalizar_parcela,
    parse_data_local,
    parse_inteiro,
    parse_numero_local,
)


@pytest.mark.parametrize('bruto, esperado', [
    ('1.500,00', 1500.0),
    ('R$ 1.234,56', 1234.56),
    ('R$\xa02.000,10', 2000.10),
    ('-35,5', -35.5),
    ('1.500', 1500.0),
    ('1500.50', 1500.50),
    ('', 0.0),
    ('   ', 0.0),
    (None, 0.0),
    (42, 42.0),
    (12.5, 12.5),
])
def test_parse_numero_local(bruto, esperado):
    assert parse_numero_local(bruto) == pytest.approx(esperado)


def test_parse_numero_local_residuo_invalido():
    with pytest.raises(ErroParseNumero) as info:
        parse_numero_local('12abc', contexto='fine')
    assert info.value.contexto == 'fine'
    assert isinstance(info.value, ValueError)


def test_parse_data_local():
    assert parse_data_local('15/06/2024') == date(2024, 6, 15)
    assert parse_data_local('2024-06-15') == date(2024, 6, 15)
    assert parse_data_local('2024-06-15T10:30:00') == date(2024, 6, 15)
    assert parse_data_local('2024-06-15 10:30:00') == date(2024, 6, 15)
    assert parse_data_local(datetime(2024, 6, 15, 8, 0)) == date(2024, 6, 15)
    assert parse_data_local(date(2024, 6, 15)) == date(2024, 6, 15)


@pytest.mark.parametrize('bruto', ['', None, '31/02/2024', 'amanha', '06-15-2024'])
def test_parse_data_local_invalida_retorna_none(bruto):
    assert parse_data_local(bruto) is None


def test_parse_inteiro():
    assert parse_inteiro('12') == 12
    assert parse_inteiro('3,0') == 3
    assert parse_inteiro('') is None
    assert parse_inteiro('abc') is None


@pytest.mark.parametrize('valor', ['Total', 'TOTAL', 'subtotal', 'Total Geral', 'total:', 'Filtros aplicados: todos', '  '])
def test_linha_lixo(valor):
    assert linha_lixo(valor)


@pytest.mark.parametrize('valor', ['Acme', '1001', 'Totalmente Novo Ltda'])
def test_linha_valida(valor):
    assert not linha_lixo(valor)


def test_normalizar_parcela():
    assert normalizar_parcela('1/3') == '1/3'
    assert normalizar_parcela('2') == '2'
    assert normalizar_parcela('01-Jan') == '1/1'
    assert normalizar_parcela('2-fev') == '2/2'
    assert normalizar_parcela('') == ''


def test_mapear_status_recebivel():
    assert mapear_status('Aberto', 'receivable') == 'Aberto'
    assert mapear_status('', 'receivable') == 'Aberto'
    assert mapear_status('LIQUIDADO', 'receivable') == 'Liquidado'
    assert mapear_status('Baixado', 'receivable') == 'Liquidado'
    assert mapear_status('Cancelado', 'receivable') == 'Cancelado'


def test_mapear_status_pagavel():
    assert mapear_status('Pago', 'payable') == 'paid'
    assert mapear_status('paid', 'payable') == 'paid'
    assert mapear_status('cancelled', 'payable') == 'cancelled'
    assert mapear_status('overdue', 'payable') == 'overdue'
    assert mapear_status('Em aberto', 'payable') == 'pending'
