"""Núcleo do fluxo de caixa: empresas, contas, saldos e o recálculo diário.

``db`` é a instância única do Flask-SQLAlchemy; ``titulos`` e ``importacao``
declaram seus modelos sobre ela, por isso este pacote precisa ser iniciado
antes dos outros dois.
"""

from flask_sqlalchemy import SQLAlchemy
from db_utils import decode_psycopg_unicode_error

db = SQLAlchemy()


def init_app(app):
    db.init_app(app)

    # modelos e rotas dependem de ``db`` já definido acima
    from . import models  # noqa: F401
    from .routes import bp as caixa_banco_bp
    app.register_blueprint(caixa_banco_bp, url_prefix="/api")

    with app.app_context():
        try:
            db.create_all()
        except UnicodeDecodeError as exc:
            # mensagem do servidor fora de UTF-8 chega como bytes crus
            message = decode_psycopg_unicode_error(exc)
            raise RuntimeError(f'Falha ao criar as tabelas do fluxo de caixa: {message}') from exc
