from caixa_banco import db


def init_app(app):
    # Registra os modelos de títulos e cria as tabelas
    from . import models  # noqa: F401
    from .routes import bp as titulos_bp
    app.register_blueprint(titulos_bp, url_prefix='/api')
    with app.app_context():
        db.create_all()
