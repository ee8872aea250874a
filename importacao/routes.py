import io
import os
from datetime import datetime

from flask import Blueprint, request, jsonify, send_file, current_app
from werkzeug.utils import secure_filename

from caixa_banco import db
from caixa_banco.carteira import ImportacaoEmAndamento, importar_planilha
from caixa_banco.services import obter_empresa
from .models import LoteImportacao
from .planilhas import ler_linhas
from .rejeitos import buscar_rejeitos, exportar_rejeitos_csv, exportar_rejeitos_xlsx, rejeito_como_dict

bp = Blueprint('importacao_api', __name__)

TIPOS = {
    'recebiveis': 'receivable',
    'pagaveis': 'payable',
}


def allowed_file(filename):
    extensoes = current_app.config.get('ALLOWED_EXTENSIONS', {'csv', 'txt', 'xlsx'})
    return "." in filename and filename.rsplit(".", 1)[1].lower() in extensoes


def _salvar_upload(filename, conteudo):
    pasta = current_app.config.get('UPLOAD_FOLDER')
    if not pasta:
        return None
    destino = os.path.join(pasta, 'importacoes')
    os.makedirs(destino, exist_ok=True)
    caminho = os.path.join(destino, f"{datetime.now():%Y%m%d%H%M%S}_{filename}")
    with open(caminho, 'wb') as f:
        f.write(conteudo)
    return caminho


def _lote_ou_404(batch_id):
    lote = db.session.get(LoteImportacao, batch_id)
    if lote is None:
        return None, (jsonify({'error': 'Lote nao encontrado'}), 404)
    return lote, None


@bp.post('/importacoes/<any(recebiveis, pagaveis):rota>')
def importar(rota):
    tipo = TIPOS[rota]
    arquivo = request.files.get('arquivo')
    if not arquivo or not arquivo.filename:
        return jsonify({'error': 'arquivo é obrigatório'}), 400
    if not allowed_file(arquivo.filename):
        return jsonify({'error': 'Formato de arquivo nao suportado'}), 400

    filename = secure_filename(arquivo.filename)
    empresa_id = request.form.get('empresa_id')
    try:
        if empresa_id:
            empresa_id = int(empresa_id)
            obter_empresa(empresa_id)
        conteudo = arquivo.read()
        _salvar_upload(filename, conteudo)
        linhas = ler_linhas(conteudo, filename)
        resultados = importar_planilha(tipo, linhas, filename, empresa_id=empresa_id or None)
    except ImportacaoEmAndamento as e:
        return jsonify({'error': str(e)}), 409
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        current_app.logger.exception('Erro ao importar planilha %s', filename)
        return jsonify({'error': str(e)}), 500

    if not resultados:
        return jsonify({'error': 'Nenhuma linha com empresa informada'}), 400

    corpo = {
        'arquivo': filename,
        'empresas': [
            dict(resultado.como_dict(), empresa_id=empresa)
            for empresa, resultado in resultados.items()
        ],
    }
    sucesso = all(r.success for r in resultados.values())
    return jsonify(corpo), 201 if sucesso else 500


@bp.get('/importacoes/<batch_id>')
def detalhar_lote(batch_id):
    lote, erro = _lote_ou_404(batch_id)
    if erro:
        return erro
    return jsonify({
        'id': lote.id,
        'empresa_id': lote.empresa_id,
        'tipo': lote.tipo,
        'nome_arquivo': lote.nome_arquivo,
        'total_rows': lote.total_rows,
        'imported_rows': lote.imported_rows,
        'rejected_rows': lote.rejected_rows,
        'deleted_rows': lote.deleted_rows,
        'total_amount': float(lote.total_amount or 0),
        'imported_amount': float(lote.imported_amount or 0),
        'rejected_amount': float(lote.rejected_amount or 0),
        'criado_em': lote.criado_em.isoformat() if lote.criado_em else None,
    })


@bp.get('/importacoes/<batch_id>/rejeitos')
def listar_rejeitos(batch_id):
    _, erro = _lote_ou_404(batch_id)
    if erro:
        return erro
    page = request.args.get('page', 1, type=int)
    page_size = request.args.get(
        'page_size', current_app.config.get('REJEITOS_PAGE_SIZE', 20), type=int
    )
    try:
        pagina = buscar_rejeitos(batch_id, page, page_size)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({
        'batch_id': batch_id,
        'page': page,
        'page_size': page_size,
        'total_count': pagina.total_count,
        'rows': [rejeito_como_dict(r) for r in pagina.rows],
    })


@bp.get('/importacoes/<batch_id>/rejeitos.csv')
def rejeitos_csv(batch_id):
    _, erro = _lote_ou_404(batch_id)
    if erro:
        return erro
    return send_file(
        io.BytesIO(exportar_rejeitos_csv(batch_id)),
        mimetype='text/csv',
        as_attachment=True,
        download_name=f'rejeitados_{batch_id}.csv',
    )


@bp.get('/importacoes/<batch_id>/rejeitos.xlsx')
def rejeitos_xlsx(batch_id):
    _, erro = _lote_ou_404(batch_id)
    if erro:
        return erro
    return send_file(
        io.BytesIO(exportar_rejeitos_xlsx(batch_id)),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=f'rejeitados_{batch_id}.xlsx',
    )
