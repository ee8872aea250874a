import uuid
from caixa_banco import db


def _novo_lote_id():
    return str(uuid.uuid4())


class LoteImportacao(db.Model):
    """Uma planilha importada pelo caminho principal de gravação."""

    __tablename__ = 'lotes_importacao'

    id = db.Column(db.String(36), primary_key=True, default=_novo_lote_id)
    empresa_id = db.Column(db.Integer, db.ForeignKey('empresas.id'), nullable=False)
    tipo = db.Column(db.String(20), nullable=False)  # 'receivable' ou 'payable'
    nome_arquivo = db.Column(db.String(255))
    total_rows = db.Column(db.Integer, default=0)
    imported_rows = db.Column(db.Integer, default=0)
    rejected_rows = db.Column(db.Integer, default=0)
    deleted_rows = db.Column(db.Integer, default=0)
    total_amount = db.Column(db.Numeric(14, 2), default=0)
    imported_amount = db.Column(db.Numeric(14, 2), default=0)
    rejected_amount = db.Column(db.Numeric(14, 2), default=0)
    criado_em = db.Column(db.DateTime, server_default=db.func.now())


class RejeitoImportacao(db.Model):
    __tablename__ = 'rejeitos_importacao'

    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.String(36), db.ForeignKey('lotes_importacao.id'), nullable=False, index=True)
    row_number = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(50), nullable=False)
    raw_data = db.Column(db.JSON)

    lote = db.relationship(
        'LoteImportacao',
        backref=db.backref('rejeitos', lazy=True, cascade='all, delete-orphan'),
    )
