from datetime import date
from decimal import Decimal, InvalidOperation

from importacao.parsers import normalizar_texto, parse_data_local, parse_numero_local
from .fluxo import custo_importacao, saldo_consolidado_antes
from .models import db, Empresa, ContaBanco, ImportacaoProduto, SaldoBancario


def garantir_empresa(nome, origem='Importação'):
    """Retorna a empresa pelo nome, criando-a se ainda não existir."""
    nome = normalizar_texto(nome)
    if not nome:
        raise ValueError('Nome da empresa é obrigatório')
    empresa = Empresa.query.filter_by(nome=nome).first()
    if empresa is None:
        empresa = Empresa(nome=nome, origem=origem)
        db.session.add(empresa)
        db.session.commit()
    return empresa


def obter_empresa(empresa_id):
    empresa = db.session.get(Empresa, empresa_id)
    if empresa is None:
        raise ValueError('Empresa nao encontrada')
    return empresa


def _valor(valor):
    try:
        return Decimal(str(parse_numero_local(valor, contexto='amount')))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Valor invalido: {valor!r}') from None


def _data(valor, padrao=None):
    if valor in (None, ''):
        return padrao
    convertida = parse_data_local(valor)
    if convertida is None:
        raise ValueError(f'Data invalida: {valor!r}')
    return convertida


def criar_conta_banco(empresa_id, dados):
    """Cadastra uma conta; ``saldo_inicial`` vira o primeiro saldo informado."""
    obter_empresa(empresa_id)
    nome = normalizar_texto(dados.get('nome'))
    if not nome:
        raise ValueError('Nome da conta é obrigatório')
    conta = ContaBanco(
        empresa_id=empresa_id,
        nome=nome,
        codigo=dados.get('codigo'),
        instituicao=dados.get('instituicao'),
        agencia=dados.get('agencia'),
        conta=dados.get('conta'),
        tipo=dados.get('tipo') or 'bank',
    )
    db.session.add(conta)
    db.session.flush()

    if dados.get('saldo_inicial') not in (None, ''):
        db.session.add(
            SaldoBancario(
                empresa_id=empresa_id,
                bank_id=conta.id,
                reference_date=_data(dados.get('data_saldo_inicial'), date.today()),
                amount=_valor(dados.get('saldo_inicial')),
            )
        )
    db.session.commit()
    return conta


def listar_contas(empresa_id):
    return ContaBanco.query.filter_by(empresa_id=empresa_id, ativo=True).order_by(ContaBanco.nome).all()


def _conta_da_empresa(empresa_id, bank_id):
    conta = db.session.get(ContaBanco, bank_id) if bank_id else None
    if conta is None or conta.empresa_id != empresa_id:
        raise ValueError('Conta bancaria nao encontrada')
    return conta


def criar_saldo(empresa_id, dados):
    conta = _conta_da_empresa(empresa_id, dados.get('bank_id'))
    saldo = SaldoBancario(
        empresa_id=empresa_id,
        bank_id=conta.id,
        reference_date=_data(dados.get('reference_date'), date.today()),
        amount=_valor(dados.get('amount')),
    )
    db.session.add(saldo)
    db.session.commit()
    return saldo


def obter_saldo(saldo_id, empresa_id=None):
    saldo = db.session.get(SaldoBancario, saldo_id)
    if saldo is None or (empresa_id is not None and saldo.empresa_id != empresa_id):
        raise ValueError('Saldo nao encontrado')
    return saldo


def atualizar_saldo(saldo, dados):
    """Atualiza um saldo informado; devolve a menor data afetada."""
    data_antiga = saldo.reference_date
    if 'bank_id' in dados:
        saldo.bank_id = _conta_da_empresa(saldo.empresa_id, dados['bank_id']).id
    if 'reference_date' in dados:
        saldo.reference_date = _data(dados['reference_date'], saldo.reference_date)
    if 'amount' in dados:
        saldo.amount = _valor(dados['amount'])
    db.session.commit()
    return min(data_antiga, saldo.reference_date)


def deletar_saldo(saldo):
    data_ref = saldo.reference_date
    db.session.delete(saldo)
    db.session.commit()
    return data_ref


def listar_saldos(empresa_id, inicio=None, fim=None):
    query = SaldoBancario.query.filter_by(empresa_id=empresa_id)
    if inicio:
        query = query.filter(SaldoBancario.reference_date >= inicio)
    if fim:
        query = query.filter(SaldoBancario.reference_date <= fim)
    return query.order_by(SaldoBancario.reference_date, SaldoBancario.id).all()


def saldo_consolidado_ate(empresa_id, data_limite):
    saldos = (
        SaldoBancario.query.filter_by(empresa_id=empresa_id)
        .filter(SaldoBancario.reference_date < data_limite)
        .all()
    )
    return saldo_consolidado_antes(saldos, data_limite)


def saldo_como_dict(saldo):
    return {
        'id': saldo.id,
        'empresa_id': saldo.empresa_id,
        'bank_id': saldo.bank_id,
        'reference_date': saldo.reference_date.isoformat() if saldo.reference_date else None,
        'amount': float(saldo.amount or 0),
        'created_at': saldo.created_at.isoformat() if saldo.created_at else None,
    }


def conta_como_dict(conta):
    return {
        'id': conta.id,
        'empresa_id': conta.empresa_id,
        'nome': conta.nome,
        'codigo': conta.codigo,
        'instituicao': conta.instituicao,
        'agencia': conta.agencia,
        'conta': conta.conta,
        'tipo': conta.tipo,
    }


CAMPOS_IMPORTACAO_VALOR = ('foreign_currency_value', 'logistics_costs', 'taxes', 'nationalization_costs')
CAMPOS_IMPORTACAO_DATA = ('start_date', 'expected_arrival_date', 'actual_arrival_date')
CAMPOS_IMPORTACAO_TEXTO = ('process_number', 'description', 'international_supplier', 'foreign_currency_code')
STATUS_IMPORTACAO = ('Pending', 'In Transit', 'Customs', 'Cleared', 'Completed', 'Cancelled')


def _cambio(valor):
    texto = normalizar_texto(valor)
    try:
        if isinstance(valor, str) and ',' not in texto:
            # cotação com ponto decimal ("5.1234") não é milhar
            cambio = Decimal(texto)
        else:
            cambio = Decimal(str(parse_numero_local(valor, contexto='exchange_rate')))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Cambio invalido: {valor!r}') from None
    if not cambio.is_finite() or cambio <= 0:
        raise ValueError('Cambio deve ser maior que zero')
    return cambio


def _aplicar_importacao(importacao, dados):
    for campo in CAMPOS_IMPORTACAO_TEXTO:
        if campo in dados:
            setattr(importacao, campo, normalizar_texto(dados[campo]) or None)
    for campo in CAMPOS_IMPORTACAO_VALOR:
        if campo in dados:
            setattr(importacao, campo, _valor(dados[campo]))
    for campo in CAMPOS_IMPORTACAO_DATA:
        if campo in dados:
            setattr(importacao, campo, _data(dados[campo]))
    if 'exchange_rate' in dados:
        importacao.exchange_rate = _cambio(dados['exchange_rate'])
    if 'status' in dados:
        if dados['status'] not in STATUS_IMPORTACAO:
            raise ValueError(f"Status de importacao invalido: {dados['status']!r}")
        importacao.status = dados['status']
    if not importacao.description:
        raise ValueError('Descrição da importação é obrigatória')


def criar_importacao_produto(empresa_id, dados):
    obter_empresa(empresa_id)
    importacao = ImportacaoProduto(empresa_id=empresa_id, exchange_rate=Decimal('1'), status='Pending')
    _aplicar_importacao(importacao, dados)
    db.session.add(importacao)
    db.session.commit()
    return importacao


def obter_importacao_produto(importacao_id, empresa_id=None):
    importacao = db.session.get(ImportacaoProduto, importacao_id)
    if importacao is None or (empresa_id is not None and importacao.empresa_id != empresa_id):
        raise ValueError('Importacao de produto nao encontrada')
    return importacao


def atualizar_importacao_produto(importacao, dados):
    try:
        _aplicar_importacao(importacao, dados)
    except ValueError:
        db.session.rollback()
        raise
    db.session.commit()
    return importacao


def deletar_importacao_produto(importacao):
    db.session.delete(importacao)
    db.session.commit()


def listar_importacoes_produto(empresa_id, status=None):
    query = ImportacaoProduto.query.filter_by(empresa_id=empresa_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(ImportacaoProduto.expected_arrival_date, ImportacaoProduto.id).all()


def importacao_como_dict(importacao):
    dados = {}
    for coluna in importacao.__table__.columns:
        valor = getattr(importacao, coluna.name)
        if hasattr(valor, 'isoformat'):
            valor = valor.isoformat()
        elif isinstance(valor, Decimal):
            valor = float(valor)
        dados[coluna.name] = valor
    dados['custo_total'] = custo_importacao(importacao)
    return dados
