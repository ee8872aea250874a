from datetime import date
from . import db


class Empresa(db.Model):
    __tablename__ = 'empresas'

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(255), unique=True, nullable=False)
    origem = db.Column(db.String(20), default='Manual')
    data_cadastro = db.Column(db.DateTime, server_default=db.func.now())


class ContaBanco(db.Model):
    __tablename__ = 'conta_banco'

    id = db.Column(db.Integer, primary_key=True)
    empresa_id = db.Column(db.Integer, db.ForeignKey('empresas.id'), nullable=False)
    nome = db.Column(db.String(100), nullable=False)
    codigo = db.Column(db.String(20))
    instituicao = db.Column(db.String(100))
    agencia = db.Column(db.String(50))
    conta = db.Column(db.String(50))
    tipo = db.Column(db.String(10), default='bank')  # 'bank' ou 'cash'
    ativo = db.Column(db.Boolean, default=True, nullable=False)

    empresa = db.relationship('Empresa', backref=db.backref('contas', lazy=True))

    __table_args__ = (
        db.UniqueConstraint('empresa_id', 'codigo', name='uq_conta_banco_empresa_codigo'),
    )


class SaldoBancario(db.Model):
    """Saldo declarado de uma conta numa data de referência.

    Vários saldos podem existir para o mesmo par (conta, data); o último
    cadastrado é o que vale ao consolidar o dia.
    """

    __tablename__ = 'saldos_bancarios'

    id = db.Column(db.Integer, primary_key=True)
    empresa_id = db.Column(db.Integer, db.ForeignKey('empresas.id'), nullable=False)
    bank_id = db.Column(db.Integer, db.ForeignKey('conta_banco.id'), nullable=False)
    reference_date = db.Column(db.Date, default=date.today, nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    conta = db.relationship('ContaBanco', backref=db.backref('saldos', lazy=True, cascade='all, delete-orphan'))


class ImportacaoProduto(db.Model):
    """Processo de importação de mercadoria com desembolso previsto.

    O custo em reais é o valor em moeda estrangeira vezes o câmbio, somado
    a frete, impostos e nacionalização, e sai do caixa na chegada prevista.
    """

    __tablename__ = 'importacoes_produto'

    id = db.Column(db.Integer, primary_key=True)
    empresa_id = db.Column(db.Integer, db.ForeignKey('empresas.id'), nullable=False)
    process_number = db.Column(db.String(50))
    description = db.Column(db.String(255), nullable=False)
    international_supplier = db.Column(db.String(255))
    foreign_currency_code = db.Column(db.String(3), default='USD')
    foreign_currency_value = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    exchange_rate = db.Column(db.Numeric(12, 4), nullable=False, default=1)
    logistics_costs = db.Column(db.Numeric(14, 2), default=0)
    taxes = db.Column(db.Numeric(14, 2), default=0)
    nationalization_costs = db.Column(db.Numeric(14, 2), default=0)
    status = db.Column(db.String(20), default='Pending', nullable=False)
    start_date = db.Column(db.Date)
    expected_arrival_date = db.Column(db.Date)
    actual_arrival_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
