"""Gravação de uma importação saneada.

O caminho principal (``replace_*``) devolve lote, contagens e valores; só
quando ele falha é tentado o caminho restrito (``strict_replace_*``), que
informa apenas linhas inseridas e ignoradas. Nenhuma exceção sai daqui: o
resultado é sempre um dos três tipos abaixo.
"""

from dataclasses import asdict, dataclass, field
from typing import List, Optional

from flask import current_app

from db_utils import describe_db_error
from .backend import BackendSQLAlchemy, json_seguro, valor_total


@dataclass
class ResumoImportacao:
    success: bool
    imported_rows: int = 0
    rejected_rows: int = 0
    imported_amount: float = 0.0
    total_amount: float = 0.0
    batch_id: Optional[str] = None
    rejected_amount: Optional[float] = None
    mensagem: str = ''
    descartes_locais: int = 0
    modo = 'completa'

    def como_dict(self):
        dados = asdict(self)
        dados['modo'] = self.modo
        return dados


@dataclass
class ImportacaoCompleta(ResumoImportacao):
    modo = 'completa'


@dataclass
class ImportacaoDegradada(ResumoImportacao):
    """Gravado pelo caminho restrito; valores somam o lote inteiro."""

    valores_aproximados: bool = True
    modo = 'degradada'


@dataclass
class ImportacaoFalhou(ResumoImportacao):
    success: bool = False
    modo = 'falhou'


_OPERACOES = {
    'receivable': ('replace_receivables', 'strict_replace_receivables'),
    'payable': ('replace_payables', 'strict_replace_payables'),
}


def montar_payload(sanitizacao):
    """Registros com número de linha e linha crua para o ledger de rejeitos."""
    linhas = []
    for registro, anotacao in zip(sanitizacao.registros, sanitizacao.anotacoes):
        linha = dict(registro)
        linha['_row_number'] = anotacao.row_number
        linha['_raw'] = json_seguro(anotacao.raw)
        linhas.append(linha)
    return linhas


def montar_descartes(sanitizacao):
    return [
        {'row_number': d.row_number, 'reason': d.reason, 'raw': json_seguro(d.raw)}
        for d in sanitizacao.descartes
    ]


def persistir(empresa_id, tipo, sanitizacao, nome_arquivo=None, backend=None):
    if tipo not in _OPERACOES:
        return ImportacaoFalhou(success=False, mensagem=f'Tipo de importacao invalido: {tipo}')

    backend = backend or BackendSQLAlchemy()
    principal, restrito = _OPERACOES[tipo]
    linhas = montar_payload(sanitizacao)
    descartes = montar_descartes(sanitizacao)
    valor_geral = round(sum(valor_total(linha, tipo) for linha in linhas), 2)

    try:
        resposta = getattr(backend, principal)(empresa_id, linhas, nome_arquivo, descartes)
        return ImportacaoCompleta(
            success=True,
            imported_rows=resposta.get('inserted', 0),
            rejected_rows=resposta.get('rejected', 0),
            imported_amount=resposta.get('imported_amount', 0.0),
            total_amount=resposta.get('total_amount', valor_geral),
            batch_id=resposta.get('batch_id'),
            rejected_amount=resposta.get('rejected_amount', 0.0),
            descartes_locais=len(descartes),
        )
    except Exception as erro:
        current_app.logger.warning(
            'Gravacao principal falhou (%s, empresa %s): %s; usando caminho restrito',
            tipo, empresa_id, describe_db_error(erro),
        )

    try:
        resposta = getattr(backend, restrito)(empresa_id, linhas)
    except Exception as erro:
        mensagem = describe_db_error(erro)
        current_app.logger.exception('Importacao %s da empresa %s falhou: %s', tipo, empresa_id, mensagem)
        return ImportacaoFalhou(success=False, mensagem=mensagem, descartes_locais=len(descartes))

    return ImportacaoDegradada(
        success=True,
        imported_rows=resposta.get('inserted', 0),
        rejected_rows=resposta.get('skipped', 0),
        imported_amount=valor_geral,
        total_amount=valor_geral,
        rejected_amount=None,
        mensagem='Importacao gravada sem relatorio de rejeitados',
        descartes_locais=len(descartes),
    )
