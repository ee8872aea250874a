"""Leitura de planilhas enviadas (.csv, .txt e .xlsx) em linhas-dicionário."""

import csv
import io
import os

import chardet
from openpyxl import load_workbook

EXTENSOES_TEXTO = {'csv', 'txt'}
EXTENSOES_EXCEL = {'xlsx'}
DELIMITADORES = ';,\t|'
CONFIANCA_MINIMA = 0.5
LINHAS_AMOSTRA = 25


def extensao(nome_arquivo):
    return os.path.splitext(nome_arquivo or '')[1].lower().lstrip('.')


def detectar_codificacao(conteudo):
    """UTF-8 (com ou sem BOM) primeiro; senão o palpite do chardet, ou latin-1."""
    try:
        conteudo.decode('utf-8-sig')
        return 'utf-8-sig'
    except UnicodeDecodeError:
        pass
    resultado = chardet.detect(conteudo)
    codificacao = resultado.get('encoding')
    if codificacao and (resultado.get('confidence') or 0) >= CONFIANCA_MINIMA:
        return codificacao
    return 'latin-1'


def _decodificar(conteudo):
    codificacao = detectar_codificacao(conteudo)
    try:
        return conteudo.decode(codificacao)
    except (LookupError, UnicodeDecodeError):
        return conteudo.decode('latin-1', errors='replace')


def detectar_delimitador(texto):
    amostra = [linha for linha in texto.splitlines() if linha.strip()][:LINHAS_AMOSTRA]
    if not amostra:
        return ';'
    try:
        return csv.Sniffer().sniff('\n'.join(amostra), delimiters=DELIMITADORES).delimiter
    except csv.Error:
        # Sniffer desiste com uma coluna só; conta no cabeçalho
        primeira = amostra[0]
        return ';' if primeira.count(';') >= primeira.count(',') else ','


def ler_texto(conteudo):
    texto = _decodificar(conteudo)
    leitor = csv.DictReader(io.StringIO(texto), delimiter=detectar_delimitador(texto))
    linhas = []
    for linha in leitor:
        linha.pop(None, None)
        linhas.append({(k or '').strip(): v for k, v in linha.items()})
    return linhas


def ler_excel(conteudo):
    wb = load_workbook(io.BytesIO(conteudo), read_only=True, data_only=True)
    try:
        ws = wb.active
        registros = ws.iter_rows(values_only=True)
        cabecalho = next(registros, None)
        if not cabecalho:
            return []
        nomes = [str(c).strip() if c is not None else '' for c in cabecalho]
        linhas = []
        for valores in registros:
            if valores is None or all(v is None for v in valores):
                continue
            linhas.append({nome: valor for nome, valor in zip(nomes, valores) if nome})
        return linhas
    finally:
        wb.close()


def ler_linhas(conteudo, nome_arquivo):
    """Converte o arquivo em uma lista de dicionários ``cabeçalho -> valor``.

    A primeira linha é sempre o cabeçalho. Linhas totalmente vazias são
    ignoradas pelos dois leitores.
    """
    ext = extensao(nome_arquivo)
    if ext in EXTENSOES_TEXTO:
        return ler_texto(conteudo)
    if ext in EXTENSOES_EXCEL:
        return ler_excel(conteudo)
    raise ValueError(f'Formato de arquivo nao suportado: {nome_arquivo}')
