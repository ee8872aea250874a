from datetime import date
from caixa_banco import db
from importacao.parsers import parse_data_local, parse_numero_local, mapear_status
from .models import MODELOS, ContaPagar

CAMPOS_VALOR = ('principal_value', 'fine', 'interest')
CAMPOS_DATA = ('issue_date', 'due_date', 'payment_prediction')


def _modelo(tipo):
    try:
        return MODELOS[tipo]
    except KeyError:
        raise ValueError(f'Tipo de titulo invalido: {tipo}') from None


def _normalizar(modelo, dados):
    """Converte valores e datas vindos de formulários para os tipos do modelo."""
    normalizados = {}
    for chave, valor in dados.items():
        if chave in ('id', 'empresa_id'):
            continue
        if chave in CAMPOS_VALOR or chave == modelo.campo_total:
            normalizados[chave] = parse_numero_local(valor, contexto=chave)
        elif chave in CAMPOS_DATA:
            normalizados[chave] = parse_data_local(valor)
        elif chave == modelo.campo_status:
            tipo = 'receivable' if modelo.campo_status == 'title_status' else 'payable'
            normalizados[chave] = mapear_status(valor, tipo)
        elif chave in modelo.__table__.columns:
            normalizados[chave] = valor
    return normalizados


def criar_titulo(tipo, empresa_id, dados):
    modelo = _modelo(tipo)
    valores = _normalizar(modelo, dados)
    faltando = [campo for campo in modelo.campos_obrigatorios if not valores.get(campo)]
    if faltando:
        raise ValueError(f"Campos obrigatorios ausentes: {', '.join(faltando)}")
    titulo = modelo(empresa_id=empresa_id, **valores)
    if not valores.get(modelo.campo_total):
        titulo.recalcular_total()
    db.session.add(titulo)
    db.session.commit()
    return titulo


def atualizar_titulo(titulo, dados):
    """Aplica a edição e mantém o total coerente com principal, multa e juros."""
    valores = _normalizar(type(titulo), dados)
    for chave, valor in valores.items():
        setattr(titulo, chave, valor)
    mexeu_componentes = any(campo in valores for campo in CAMPOS_VALOR)
    # total em branco ou zero volta a ser principal + multa + juros
    if (mexeu_componentes or titulo.campo_total in valores) and not valores.get(titulo.campo_total):
        titulo.recalcular_total()
    db.session.commit()
    return titulo


def deletar_titulo(titulo):
    db.session.delete(titulo)
    db.session.commit()


def obter_titulo(tipo, titulo_id, empresa_id=None):
    modelo = _modelo(tipo)
    titulo = db.session.get(modelo, titulo_id)
    if titulo is None or (empresa_id is not None and titulo.empresa_id != empresa_id):
        raise ValueError('Titulo nao encontrado')
    return titulo


def listar_titulos(tipo, empresa_id):
    modelo = _modelo(tipo)
    return (
        modelo.query.filter_by(empresa_id=empresa_id)
        .order_by(modelo.due_date, modelo.id)
        .all()
    )


def marcar_pagaveis_vencidos(empresa_id, hoje=None):
    """Marca como ``overdue`` as contas a pagar pendentes já vencidas."""
    hoje = hoje or date.today()
    vencidas = (
        ContaPagar.query.filter_by(empresa_id=empresa_id, status='pending')
        .filter(ContaPagar.due_date < hoje)
        .all()
    )
    for conta in vencidas:
        conta.status = 'overdue'
    db.session.commit()
    return len(vencidas)
