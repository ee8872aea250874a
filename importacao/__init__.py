from caixa_banco import db


def init_app(app):
    # Registra lotes, rejeitados e as rotas de importação
    from . import models  # noqa: F401
    from .routes import bp as importacao_bp
    app.register_blueprint(importacao_bp, url_prefix='/api')
    with app.app_context():
        db.create_all()
