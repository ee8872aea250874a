import io
from flask import Blueprint, request, jsonify, send_file, current_app
from importacao.parsers import parse_data_local
from .carteira import CarteiraCaixa
from .models import db, Empresa
from .relatorios import gerar_pdf_fluxo
from . import services

bp = Blueprint('caixa_banco_api', __name__)


def _empresa_id(data=None):
    valor = (data or {}).get('empresa_id') or request.args.get('empresa_id')
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise ValueError('empresa_id é obrigatório') from None


def _periodo():
    inicio = request.args.get('inicio')
    fim = request.args.get('fim')
    inicio = parse_data_local(inicio) if inicio else None
    fim = parse_data_local(fim) if fim else None
    return inicio, fim


def _carteira(empresa_id):
    services.obter_empresa(empresa_id)
    return CarteiraCaixa(empresa_id).carregar()


@bp.errorhandler(ValueError)
def _erro_validacao(e):
    return jsonify({'error': str(e)}), 400


@bp.get('/empresas')
def listar_empresas():
    empresas = Empresa.query.order_by(Empresa.nome).all()
    return jsonify([
        {'id': e.id, 'nome': e.nome, 'origem': e.origem} for e in empresas
    ])


@bp.post('/empresas')
def criar_empresa():
    data = request.get_json() or {}
    empresa = services.garantir_empresa(data.get('nome'), origem=data.get('origem') or 'Manual')
    return jsonify({'id': empresa.id, 'nome': empresa.nome}), 201


@bp.get('/fluxo-caixa')
def fluxo_caixa():
    carteira = _carteira(_empresa_id())
    inicio, fim = _periodo()
    dias = carteira.dias_no_periodo(inicio, fim)
    return jsonify({
        'empresa_id': carteira.empresa_id,
        'dias': [d.como_dict() for d in dias],
        'resumo': carteira.resumo(inicio, fim),
        'anomalias': carteira.anomalias(),
    })


@bp.get('/fluxo-caixa/pdf')
def fluxo_caixa_pdf():
    empresa_id = _empresa_id()
    carteira = _carteira(empresa_id)
    inicio, fim = _periodo()
    empresa = services.obter_empresa(empresa_id)
    try:
        pdf_bytes = gerar_pdf_fluxo(carteira.dias_no_periodo(inicio, fim), empresa.nome)
    except Exception as e:
        current_app.logger.exception('Falha ao gerar PDF do fluxo de caixa')
        return jsonify({'error': str(e)}), 500
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name='fluxo_de_caixa.pdf',
    )


@bp.post('/fluxo-caixa/marcar-vencidos')
def marcar_vencidos():
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    quantidade = carteira.marcar_vencidos()
    return jsonify({'atualizados': quantidade}), 200


@bp.get('/bancos')
def listar_bancos():
    contas = services.listar_contas(_empresa_id())
    return jsonify([services.conta_como_dict(c) for c in contas])


@bp.post('/bancos')
def criar_banco():
    data = request.get_json() or {}
    try:
        conta = services.criar_conta_banco(_empresa_id(data), data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Erro ao cadastrar conta bancaria')
        return jsonify({'error': str(e)}), 500
    return jsonify({'id': conta.id}), 201


@bp.get('/saldos')
def listar_saldos():
    inicio, fim = _periodo()
    saldos = services.listar_saldos(_empresa_id(), inicio, fim)
    return jsonify([services.saldo_como_dict(s) for s in saldos])


@bp.post('/saldos')
def criar_saldo():
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    saldo = carteira.adicionar_saldo(data)
    return jsonify(services.saldo_como_dict(saldo)), 201


@bp.put('/saldos/<int:saldo_id>')
def atualizar_saldo(saldo_id):
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    saldo = carteira.atualizar_saldo(saldo_id, data)
    return jsonify(services.saldo_como_dict(saldo)), 200


@bp.delete('/saldos/<int:saldo_id>')
def excluir_saldo(saldo_id):
    carteira = _carteira(_empresa_id())
    carteira.excluir_saldo(saldo_id)
    return '', 204


@bp.get('/importacoes-produto')
def listar_importacoes_produto():
    importacoes = services.listar_importacoes_produto(_empresa_id(), request.args.get('status'))
    return jsonify([services.importacao_como_dict(i) for i in importacoes])


@bp.post('/importacoes-produto')
def criar_importacao_produto():
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    importacao = carteira.adicionar_importacao_produto(data)
    return jsonify(services.importacao_como_dict(importacao)), 201


@bp.put('/importacoes-produto/<int:importacao_id>')
def atualizar_importacao_produto(importacao_id):
    data = request.get_json() or {}
    carteira = _carteira(_empresa_id(data))
    importacao = carteira.atualizar_importacao_produto(importacao_id, data)
    return jsonify(services.importacao_como_dict(importacao)), 200


@bp.delete('/importacoes-produto/<int:importacao_id>')
def excluir_importacao_produto(importacao_id):
    carteira = _carteira(_empresa_id())
    carteira.excluir_importacao_produto(importacao_id)
    return '', 204
