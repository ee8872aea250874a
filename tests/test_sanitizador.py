from datetime import date
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from importacao.sanitizador import PRIMEIRA_LINHA_DADOS, sanitizar_linha, sanitizar_linhas


def test_linha_planilha_recebivel():
    linha = {
        'Cliente': 'Acme',
        'NF': '1001',
        'Vlr Principal': '1.500,00',
        'Dt. Vencimento': '15/06/2024',
    }
    registro, anotacao = sanitizar_linha(linha, 'receivable', 2)
    assert registro['customer'] == 'Acme'
    assert registro['invoice_number'] == '1001'
    assert registro['principal_value'] == 1500.0
    assert registro['due_date'] == date(2024, 6, 15)
    assert registro['updated_value'] == 1500.0
    assert registro['title_status'] == 'Aberto'
    assert anotacao.erros == {}
    assert anotacao.row_number == 2


def test_linha_canonica_permanece_igual():
    linha = {
        'invoice_number': '1001',
        'customer': 'Acme',
        'principal_value': 100.0,
        'fine': 2.0,
        'interest': 1.5,
        'updated_value': 103.5,
        'title_status': 'Aberto',
        'due_date': date(2024, 6, 15),
        'issue_date': date(2024, 6, 1),
    }
    registro, _ = sanitizar_linha(linha, 'receivable', 2)
    for campo, valor in linha.items():
        assert registro[campo] == valor


def test_total_zerado_e_derivado():
    linha = {'Cliente': 'Acme', 'NF': '1', 'Vlr Principal': '100,00', 'Multa': '2,00', 'Juros': '0,50', 'Vlr Atualizado': '0'}
    registro, _ = sanitizar_linha(linha, 'receivable', 2)
    assert registro['updated_value'] == pytest.approx(102.5)


def test_total_informado_e_mantido():
    linha = {'Cliente': 'Acme', 'NF': '1', 'Vlr Principal': '100,00', 'Vlr Atualizado': '110,00'}
    registro, _ = sanitizar_linha(linha, 'receivable', 2)
    assert registro['updated_value'] == 110.0


def test_valor_invalido_vira_zero_com_anotacao():
    linha = {'Cliente': 'Acme', 'NF': '1', 'Vlr Principal': '100,00', 'Multa': 'dez reais'}
    registro, anotacao = sanitizar_linha(linha, 'receivable', 7)
    assert registro['fine'] == 0.0
    assert registro['updated_value'] == 100.0
    assert anotacao.erros == {'fine': 'valor_invalido'}
    assert anotacao.raw == linha


def test_data_invalida_anotada():
    linha = {'Cliente': 'Acme', 'NF': '1', 'Dt. Vencimento': '32/13/2024'}
    registro, anotacao = sanitizar_linha(linha, 'receivable', 2)
    assert registro['due_date'] is None
    assert anotacao.erros['due_date'] == 'data_invalida'


def test_documento_invalido_anotado():
    linha = {'Cliente': 'Acme', 'NF': '1', 'CNPJ/CPF': '123'}
    _, anotacao = sanitizar_linha(linha, 'receivable', 2)
    assert anotacao.erros['customer_doc'] == 'documento_invalido'


@pytest.mark.parametrize('lixo', ['Total', 'TOTAL', 'Subtotal', 'Filtros aplicados'])
def test_linhas_lixo_sao_descartadas(lixo):
    linha = {'Cliente': lixo, 'NF': '1001', 'Vlr Principal': '1.500,00', 'Dt. Vencimento': '15/06/2024'}
    registro, descarte = sanitizar_linha(linha, 'receivable', 9)
    assert registro is None
    assert descarte.reason == 'linha_invalida'
    assert descarte.row_number == 9


def test_identificador_vazio_descartado():
    registro, descarte = sanitizar_linha({'Cliente': 'Acme', 'NF': ''}, 'receivable', 3)
    assert registro is None
    assert descarte.reason == 'invoice_number_vazio'

    registro, descarte = sanitizar_linha({'Documento': 'D1'}, 'payable', 4)
    assert registro is None
    assert descarte.reason == 'entity_name_vazio'


def test_sanitizar_linhas_numera_e_preenche_empresa():
    linhas = [
        {'Empresa': 'Matriz', 'Cliente': 'A', 'NF': '1', 'Vlr Principal': '10'},
        {'Empresa': '', 'Cliente': 'B', 'NF': '2', 'Vlr Principal': '20'},
        {'Empresa': '', 'Cliente': 'Total', 'NF': '', 'Vlr Principal': '30'},
        {'Empresa': 'Filial', 'Cliente': 'C', 'NF': '3', 'Vlr Principal': '5'},
    ]
    resultado = sanitizar_linhas(linhas, 'receivable')
    assert [r['customer'] for r in resultado.registros] == ['A', 'B', 'C']
    assert [r['company'] for r in resultado.registros] == ['Matriz', 'Matriz', 'Filial']
    assert [a.row_number for a in resultado.anotacoes] == [2, 3, 5]
    assert len(resultado.descartes) == 1
    assert resultado.descartes[0].row_number == PRIMEIRA_LINHA_DADOS + 2
    assert resultado.total_linhas == 4


def test_sanitizar_linhas_tipo_invalido():
    with pytest.raises(ValueError):
        sanitizar_linhas([], 'outro')


def test_pagavel_status_e_total():
    linha = {'Fornecedor': 'Papelaria', 'Documento': 'D-9', 'Vencimento': '01/07/2024', 'Valor': '50,00', 'Status': 'Pago'}
    registro, _ = sanitizar_linha(linha, 'payable', 2)
    assert registro['amount'] == 50.0
    assert registro['status'] == 'paid'
    assert registro['due_date'] == date(2024, 7, 1)
