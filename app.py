# app.py
# Arquivo principal da aplicação Flask de fluxo de caixa.

import os
import logging

from flask import Flask, jsonify

# Importa a configuração do banco de dados e outras variáveis
import config
from caixa_banco import init_app as init_caixa_banco
from titulos import init_app as init_titulos
from importacao import init_app as init_importacao


def create_app(overrides=None):
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["UPLOAD_FOLDER"] = config.UPLOAD_FOLDER
    app.config["ALLOWED_EXTENSIONS"] = config.ALLOWED_EXTENSIONS
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_CONTENT_LENGTH
    app.config["SQLALCHEMY_DATABASE_URI"] = config.DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["CASH_FLOW_DIAS_HISTORICO"] = config.CASH_FLOW_DIAS_HISTORICO
    app.config["CASH_FLOW_DIAS_PROJECAO"] = config.CASH_FLOW_DIAS_PROJECAO
    app.config["REJEITOS_PAGE_SIZE"] = config.REJEITOS_PAGE_SIZE
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO))

    # Cria a pasta de uploads se ela não existir
    os.makedirs(os.path.join(app.config["UPLOAD_FOLDER"], "importacoes"), exist_ok=True)

    init_caixa_banco(app)
    init_titulos(app)
    init_importacao(app)

    @app.errorhandler(413)
    def arquivo_grande_demais(e):
        return jsonify({"error": "Arquivo excede o tamanho máximo permitido"}), 413

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


# --- Execução da Aplicação ---

if __name__ == "__main__":
    # Ao definir host="0.0.0.0" o Flask escuta em todas as interfaces de
    # rede. Altere debug para False em produção.
    create_app().run(host="0.0.0.0", port=5000, debug=True)
