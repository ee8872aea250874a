"""Consulta e exportação das linhas rejeitadas de um lote."""

import csv
import io
import json
from dataclasses import dataclass, field
from typing import List

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .backend import BackendSQLAlchemy

MOTIVOS = {
    'campo_obrigatorio_vazio': 'Campo obrigatório vazio',
    'invoice_number_vazio': 'Nota Fiscal vazia',
    'customer_vazio': 'Cliente vazio',
    'document_number_vazio': 'Documento vazio',
    'entity_name_vazio': 'Fornecedor vazio',
    'valor_invalido': 'Valor inválido',
    'data_vencimento_invalida': 'Data Vencimento inválida',
    'parcela_formato_invalido': 'Parcela inválida',
    'duplicado_lote': 'Duplicado (Mesmo Lote)',
    'valor_negativo': 'Valor negativo',
    'valor_atualizado_negativo': 'Valor atualizado negativo',
    'vencimento_antes_emissao': 'Vencimento anterior à emissão',
    'linha_invalida': 'Linha inválida',
    'empresa_vazia': 'Linha sem Empresa',
}

CABECALHO = ['Linha', 'Motivo', 'Descrição', 'Dados']


def traduzir_motivo(codigo):
    """Rótulo legível do código; códigos desconhecidos voltam como vieram."""
    return MOTIVOS.get(codigo, codigo)


@dataclass
class PaginaRejeitos:
    rows: List = field(default_factory=list)
    total_count: int = 0


def buscar_rejeitos(batch_id, page=1, page_size=20, backend=None):
    if not batch_id:
        raise ValueError('Rejeitados disponiveis apenas para importacoes com lote')
    backend = backend or BackendSQLAlchemy()
    linhas, total = backend.fetch_rejects(batch_id, page, page_size)
    return PaginaRejeitos(rows=list(linhas), total_count=total)


def rejeito_como_dict(rejeito):
    return {
        'id': rejeito.id,
        'batch_id': rejeito.batch_id,
        'row_number': rejeito.row_number,
        'reason': rejeito.reason,
        'reason_label': traduzir_motivo(rejeito.reason),
        'raw_data': rejeito.raw_data,
    }


def _todos_rejeitos(batch_id, backend):
    pagina = buscar_rejeitos(batch_id, page=1, page_size=1, backend=backend)
    if not pagina.total_count:
        return []
    return buscar_rejeitos(batch_id, page=1, page_size=pagina.total_count, backend=backend).rows


def _linha_exportacao(rejeito):
    return [
        rejeito.row_number,
        rejeito.reason,
        traduzir_motivo(rejeito.reason),
        json.dumps(rejeito.raw_data or {}, ensure_ascii=False, sort_keys=True),
    ]


def exportar_rejeitos_csv(batch_id, backend=None):
    """CSV separado por ``;`` com BOM, para abrir direto no Excel."""
    saida = io.StringIO()
    escritor = csv.writer(saida, delimiter=';')
    escritor.writerow(CABECALHO)
    for rejeito in _todos_rejeitos(batch_id, backend):
        escritor.writerow(_linha_exportacao(rejeito))
    return ('\ufeff' + saida.getvalue()).encode('utf-8')


def exportar_rejeitos_xlsx(batch_id, backend=None):
    wb = Workbook()
    ws = wb.active
    ws.title = 'Rejeitados'
    ws.append(CABECALHO)

    bold_font = Font(bold=True)
    for cell in ws[1]:
        cell.font = bold_font

    for rejeito in _todos_rejeitos(batch_id, backend):
        ws.append(_linha_exportacao(rejeito))

    column_widths = [8, 28, 32, 80]
    for idx, width in enumerate(column_widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
