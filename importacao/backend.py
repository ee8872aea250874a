"""Serviço de dados usado pela importação.

Implementa as operações de substituição em lote sobre o Flask-SQLAlchemy:
``replace_*`` grava lote e rejeitados linha a linha; ``strict_replace_*`` é
a alternativa mais restrita, que só devolve quantidades inseridas e
ignoradas.
"""

import re
from datetime import date, datetime
from decimal import Decimal

from caixa_banco import db
from titulos.models import MODELOS
from .models import LoteImportacao, RejeitoImportacao
from .parsers import normalizar_texto, parse_data_local
from .sanitizador import CAMPOS_DATA, esquema_de

PARCELA_VALIDA = re.compile(r"^\d+(/\d+)?$")

CHAVES_DUPLICIDADE = {
    'receivable': ('invoice_number', 'order_number', 'installment'),
    'payable': ('document_number', 'entity_name', 'due_date'),
}


def json_seguro(valor):
    """Converte o conteúdo de uma linha crua para algo gravável em JSON."""
    if isinstance(valor, dict):
        return {str(k): json_seguro(v) for k, v in valor.items()}
    if isinstance(valor, (list, tuple)):
        return [json_seguro(v) for v in valor]
    if isinstance(valor, (datetime, date)):
        return valor.isoformat()
    if isinstance(valor, Decimal):
        return float(valor)
    if valor is None or isinstance(valor, (str, int, float, bool)):
        return valor
    return str(valor)


def _numero(valor):
    if isinstance(valor, bool):
        return None
    if isinstance(valor, (int, float, Decimal)):
        return float(valor)
    return None


def valor_total(registro, tipo):
    total = _numero(registro.get(esquema_de(tipo).campo_total)) if isinstance(registro, dict) else None
    return round(total or 0.0, 2)


def motivo_rejeicao(registro, tipo, chaves_vistas):
    """Validação linha a linha feita na gravação; None quando a linha é aceita."""
    esquema = esquema_de(tipo)
    if not isinstance(registro, dict):
        return 'linha_invalida'
    for campo in esquema.identificadores:
        if not normalizar_texto(registro.get(campo)):
            return f'{campo}_vazio'

    vencimento = parse_data_local(registro.get('due_date'))
    if vencimento is None:
        return 'data_vencimento_invalida'

    principal = _numero(registro.get('principal_value'))
    total = _numero(registro.get(esquema.campo_total))
    if principal is None or total is None:
        return 'valor_invalido'
    if principal < 0:
        return 'valor_negativo'
    if total < 0:
        return 'valor_atualizado_negativo'

    emissao = parse_data_local(registro.get('issue_date'))
    if emissao and vencimento < emissao:
        return 'vencimento_antes_emissao'

    parcela = normalizar_texto(registro.get('installment'))
    if parcela and not PARCELA_VALIDA.match(parcela):
        return 'parcela_formato_invalido'

    chave = tuple(
        vencimento if campo == 'due_date' else normalizar_texto(registro.get(campo)).lower()
        for campo in CHAVES_DUPLICIDADE[tipo]
    )
    if chave in chaves_vistas:
        return 'duplicado_lote'
    chaves_vistas.add(chave)
    return None


def _novo_titulo(tipo, empresa_id, registro, batch_id=None):
    modelo = MODELOS[tipo]
    valores = {}
    for campo, valor in registro.items():
        if campo.startswith('_') or campo in ('id', 'empresa_id', 'company'):
            continue
        if campo not in modelo.__table__.columns:
            continue
        valores[campo] = parse_data_local(valor) if campo in CAMPOS_DATA else valor
    return modelo(empresa_id=empresa_id, batch_id=batch_id, **valores)


class BackendSQLAlchemy:
    """Operações em lote sobre o banco da aplicação."""

    def replace_receivables(self, empresa_id, rows, file_name=None, discards=()):
        return self._replace('receivable', empresa_id, rows, file_name, discards)

    def replace_payables(self, empresa_id, rows, file_name=None, discards=()):
        return self._replace('payable', empresa_id, rows, file_name, discards)

    def strict_replace_receivables(self, empresa_id, rows):
        return self._strict_replace('receivable', empresa_id, rows)

    def strict_replace_payables(self, empresa_id, rows):
        return self._strict_replace('payable', empresa_id, rows)

    def _replace(self, tipo, empresa_id, rows, file_name, discards):
        modelo = MODELOS[tipo]
        try:
            lote = LoteImportacao(empresa_id=empresa_id, tipo=tipo, nome_arquivo=file_name)
            db.session.add(lote)
            db.session.flush()

            removidos = modelo.query.filter_by(empresa_id=empresa_id).delete(synchronize_session=False)

            inseridos = rejeitados = 0
            valor_importado = valor_rejeitado = valor_geral = 0.0
            chaves = set()

            for descarte in discards:
                db.session.add(
                    RejeitoImportacao(
                        batch_id=lote.id,
                        row_number=descarte['row_number'],
                        reason=descarte['reason'],
                        raw_data=json_seguro(descarte.get('raw')),
                    )
                )
                rejeitados += 1

            for posicao, registro in enumerate(rows, start=1):
                numero = registro.get('_row_number', posicao) if isinstance(registro, dict) else posicao
                total = valor_total(registro, tipo)
                valor_geral += total
                motivo = motivo_rejeicao(registro, tipo, chaves)
                if motivo:
                    bruto = registro.get('_raw', registro) if isinstance(registro, dict) else registro
                    db.session.add(
                        RejeitoImportacao(
                            batch_id=lote.id,
                            row_number=numero,
                            reason=motivo,
                            raw_data=json_seguro(bruto),
                        )
                    )
                    rejeitados += 1
                    valor_rejeitado += total
                    continue
                db.session.add(_novo_titulo(tipo, empresa_id, registro, lote.id))
                inseridos += 1
                valor_importado += total

            lote.total_rows = len(rows) + len(discards)
            lote.imported_rows = inseridos
            lote.rejected_rows = rejeitados
            lote.deleted_rows = removidos
            lote.total_amount = round(valor_geral, 2)
            lote.imported_amount = round(valor_importado, 2)
            lote.rejected_amount = round(valor_rejeitado, 2)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return {
            'success': True,
            'batch_id': lote.id,
            'total_rows': len(rows) + len(discards),
            'inserted': inseridos,
            'rejected': rejeitados,
            'deleted': removidos,
            'total_amount': round(valor_geral, 2),
            'imported_amount': round(valor_importado, 2),
            'rejected_amount': round(valor_rejeitado, 2),
        }

    def _strict_replace(self, tipo, empresa_id, rows):
        modelo = MODELOS[tipo]
        try:
            removidos = modelo.query.filter_by(empresa_id=empresa_id).delete(synchronize_session=False)
            inseridos = ignorados = 0
            chaves = set()
            for registro in rows:
                if motivo_rejeicao(registro, tipo, chaves):
                    ignorados += 1
                    continue
                db.session.add(_novo_titulo(tipo, empresa_id, registro))
                inseridos += 1
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return {'success': True, 'inserted': inseridos, 'skipped': ignorados, 'deleted': removidos}

    def fetch_rejects(self, batch_id, page=1, page_size=20):
        page = max(int(page or 1), 1)
        page_size = max(int(page_size or 1), 1)
        consulta = RejeitoImportacao.query.filter_by(batch_id=batch_id)
        total = consulta.count()
        linhas = (
            consulta.order_by(RejeitoImportacao.row_number, RejeitoImportacao.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return linhas, total
