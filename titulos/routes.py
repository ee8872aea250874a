from flask import Blueprint, request, jsonify
from caixa_banco.carteira import CarteiraCaixa
from caixa_banco.services import obter_empresa
from . import services

bp = Blueprint('titulos_api', __name__)

ROTAS_TIPO = {
    'recebiveis': 'receivable',
    'pagaveis': 'payable',
}


def _tipo(rota):
    try:
        return ROTAS_TIPO[rota]
    except KeyError:
        raise ValueError(f'Tipo de titulo invalido: {rota}') from None


def _empresa_id(data=None):
    valor = (data or {}).get('empresa_id') or request.args.get('empresa_id')
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise ValueError('empresa_id é obrigatório') from None


def _carteira(empresa_id):
    obter_empresa(empresa_id)
    return CarteiraCaixa(empresa_id).carregar()


@bp.errorhandler(ValueError)
def _erro_validacao(e):
    return jsonify({'error': str(e)}), 400


@bp.get('/<any(recebiveis, pagaveis):rota>')
def listar(rota):
    tipo = _tipo(rota)
    titulos = services.listar_titulos(tipo, _empresa_id())
    return jsonify([t.como_dict() for t in titulos])


@bp.get('/<any(recebiveis, pagaveis):rota>/<int:titulo_id>')
def detalhar(rota, titulo_id):
    titulo = services.obter_titulo(_tipo(rota), titulo_id, _empresa_id())
    return jsonify(titulo.como_dict())


@bp.post('/<any(recebiveis, pagaveis):rota>')
def criar(rota):
    tipo = _tipo(rota)
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    if tipo == 'receivable':
        titulo = carteira.adicionar_recebivel(data)
    else:
        titulo = carteira.adicionar_pagavel(data)
    return jsonify(titulo.como_dict()), 201


@bp.put('/<any(recebiveis, pagaveis):rota>/<int:titulo_id>')
def atualizar(rota, titulo_id):
    tipo = _tipo(rota)
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    if tipo == 'receivable':
        titulo = carteira.atualizar_recebivel(titulo_id, data)
    else:
        titulo = carteira.atualizar_pagavel(titulo_id, data)
    return jsonify(titulo.como_dict()), 200


@bp.delete('/<any(recebiveis, pagaveis):rota>/<int:titulo_id>')
def excluir(rota, titulo_id):
    tipo = _tipo(rota)
    carteira = _carteira(_empresa_id())
    if tipo == 'receivable':
        carteira.excluir_recebivel(titulo_id)
    else:
        carteira.excluir_pagavel(titulo_id)
    return '', 204
