from datetime import date
from flask import Flask
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from importacao.persistencia import (
    ImportacaoCompleta,
    ImportacaoDegradada,
    ImportacaoFalhou,
    montar_payload,
    persistir,
)
from importacao.sanitizador import sanitizar_linhas


class ErroDriver(Exception):
    pass


class ErroSQLAlchemy(Exception):
    def __init__(self, orig):
        super().__init__('(psycopg2.errors.X) wrapper [SQL: INSERT ...]')
        self.orig = orig


class BackendFalso:
    def __init__(self, principal=None, restrito=None):
        self.principal = principal
        self.restrito = restrito
        self.chamadas = []

    def _responder(self, resposta):
        if isinstance(resposta, Exception):
            raise resposta
        return resposta

    def replace_receivables(self, empresa_id, rows, file_name=None, discards=()):
        self.chamadas.append(('replace_receivables', len(rows), len(discards)))
        return self._responder(self.principal)

    def strict_replace_receivables(self, empresa_id, rows):
        self.chamadas.append(('strict_replace_receivables', len(rows)))
        return self._responder(self.restrito)

    replace_payables = replace_receivables
    strict_replace_payables = strict_replace_receivables


def setup_app():
    app = Flask(__name__)
    return app


def sanitizacao(quantidade=10):
    linhas = [
        {'Cliente': f'C{i}', 'NF': str(i), 'Vlr Principal': '10,00', 'Dt. Vencimento': '12/06/2024'}
        for i in range(quantidade)
    ]
    linhas.append({'Cliente': 'Total', 'NF': '', 'Vlr Principal': '100,00'})
    return sanitizar_linhas(linhas, 'receivable')


def test_falha_no_principal_usa_restrito():
    app = setup_app()
    backend = BackendFalso(principal=ErroDriver('timeout'), restrito={'inserted': 8, 'skipped': 2})
    with app.app_context():
        resultado = persistir(1, 'receivable', sanitizacao(), 'x.csv', backend)
    assert isinstance(resultado, ImportacaoDegradada)
    assert resultado.success is True
    assert resultado.imported_rows == 8
    assert resultado.rejected_rows == 2
    assert resultado.batch_id is None
    assert resultado.rejected_amount is None
    assert resultado.valores_aproximados is True
    assert resultado.total_amount == 100.0
    assert [c[0] for c in backend.chamadas] == ['replace_receivables', 'strict_replace_receivables']


def test_principal_com_sucesso_nao_chama_restrito():
    app = setup_app()
    resposta = {
        'batch_id': 'lote-1', 'inserted': 9, 'rejected': 2,
        'imported_amount': 90.0, 'total_amount': 100.0, 'rejected_amount': 10.0,
    }
    backend = BackendFalso(principal=resposta, restrito=ErroDriver('nao deveria'))
    with app.app_context():
        resultado = persistir(1, 'receivable', sanitizacao(), 'x.csv', backend)
    assert isinstance(resultado, ImportacaoCompleta)
    assert resultado.batch_id == 'lote-1'
    assert resultado.imported_rows == 9
    assert resultado.rejected_rows == 2
    assert resultado.rejected_amount == 10.0
    assert resultado.descartes_locais == 1
    assert backend.chamadas == [('replace_receivables', 10, 1)]


def test_duas_falhas_retornam_mensagem_do_driver():
    app = setup_app()
    backend = BackendFalso(
        principal=ErroDriver('primeira falha'),
        restrito=ErroSQLAlchemy(ErroDriver('duplicate key value violates unique constraint')),
    )
    with app.app_context():
        resultado = persistir(1, 'receivable', sanitizacao(), 'x.csv', backend)
    assert isinstance(resultado, ImportacaoFalhou)
    assert resultado.success is False
    assert resultado.mensagem == 'duplicate key value violates unique constraint'
    assert resultado.como_dict()['modo'] == 'falhou'


def test_tipo_invalido_falha_fechado():
    app = setup_app()
    with app.app_context():
        resultado = persistir(1, 'outro', sanitizacao(1), None, BackendFalso())
    assert resultado.success is False


def test_payload_leva_linha_e_dados_crus():
    linhas = [{'Cliente': 'A', 'NF': '1', 'Dt. Vencimento': date(2024, 6, 12)}]
    payload = montar_payload(sanitizar_linhas(linhas, 'receivable'))
    assert payload[0]['_row_number'] == 2
    assert payload[0]['_raw']['Dt. Vencimento'] == '2024-06-12'
    assert payload[0]['due_date'] == date(2024, 6, 12)


def test_como_dict_inclui_modo():
    dados = ImportacaoDegradada(success=True, imported_rows=1).como_dict()
    assert dados['modo'] == 'degradada'
    assert dados['valores_aproximados'] is True
    assert dados['rejected_amount'] is None
