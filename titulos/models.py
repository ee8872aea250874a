from decimal import Decimal
from caixa_banco import db

STATUS_RECEBIVEL = ('Aberto', 'Liquidado', 'Cancelado')
STATUS_PAGAVEL = ('pending', 'paid', 'overdue', 'cancelled')


class TituloMixin:
    """Campos comuns de recebíveis e pagáveis.

    ``total_value`` é sempre ``principal + multa + juros``. O total gravado
    (``updated_value`` ou ``amount``) pode vir explícito de uma importação e
    é recalculado quando um dos três componentes é editado manualmente.
    """

    campo_total = None
    campo_status = None
    campos_obrigatorios = ()

    principal_value = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    fine = db.Column(db.Numeric(14, 2), default=0)
    interest = db.Column(db.Numeric(14, 2), default=0)
    issue_date = db.Column(db.Date)
    due_date = db.Column(db.Date)
    payment_prediction = db.Column(db.Date)
    description = db.Column(db.Text)
    batch_id = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    @property
    def total_value(self):
        return round(
            float(self.principal_value or 0) + float(self.fine or 0) + float(self.interest or 0),
            2,
        )

    def recalcular_total(self):
        setattr(self, self.campo_total, self.total_value)

    @property
    def status_atual(self):
        return getattr(self, self.campo_status)

    def como_dict(self):
        dados = {}
        for coluna in self.__table__.columns:
            valor = getattr(self, coluna.name)
            if hasattr(valor, 'isoformat'):
                valor = valor.isoformat()
            elif isinstance(valor, Decimal):
                valor = float(valor)
            dados[coluna.name] = valor
        dados['total_value'] = self.total_value
        return dados

    def anomalias(self):
        encontradas = []
        if float(self.principal_value or 0) < 0:
            encontradas.append('valor_negativo')
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            encontradas.append('vencimento_antes_emissao')
        return encontradas


class ContaReceber(TituloMixin, db.Model):
    __tablename__ = 'contas_receber'

    campo_total = 'updated_value'
    campos_obrigatorios = ('customer', 'due_date')
    campo_status = 'title_status'

    id = db.Column(db.Integer, primary_key=True)
    empresa_id = db.Column(db.Integer, db.ForeignKey('empresas.id'), nullable=False)
    customer = db.Column(db.String(255), nullable=False)
    customer_doc = db.Column(db.String(20))
    customer_code = db.Column(db.String(50))
    invoice_number = db.Column(db.String(50))
    order_number = db.Column(db.String(50))
    installment = db.Column(db.String(20))
    title_status = db.Column(db.String(20), default='Aberto', nullable=False)
    updated_value = db.Column(db.Numeric(14, 2), default=0)
    seller = db.Column(db.String(255))
    uf = db.Column(db.String(20))
    regional = db.Column(db.String(100))
    days_overdue = db.Column(db.Integer, default=0)


class ContaPagar(TituloMixin, db.Model):
    __tablename__ = 'contas_pagar'

    campo_total = 'amount'
    campos_obrigatorios = ('entity_name', 'due_date')
    campo_status = 'status'

    id = db.Column(db.Integer, primary_key=True)
    empresa_id = db.Column(db.Integer, db.ForeignKey('empresas.id'), nullable=False)
    entity_name = db.Column(db.String(255), nullable=False)
    document_number = db.Column(db.String(50))
    category = db.Column(db.String(100))
    status = db.Column(db.String(20), default='pending', nullable=False)
    amount = db.Column(db.Numeric(14, 2), default=0)


MODELOS = {
    'receivable': ContaReceber,
    'payable': ContaPagar,
}
