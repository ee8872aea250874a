"""Conversores de números, datas e textos no formato brasileiro."""

import re
from datetime import date, datetime
from decimal import Decimal

from validate_docbr import CNPJ, CPF

cpf_validator = CPF()
cnpj_validator = CNPJ()

_AGRUPAMENTO_MILHAR = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
_RESIDUO_NUMERICO = re.compile(r"^-?[\d.,]+$")
_PADROES_LIXO = (
    re.compile(r"^(sub)?total(is)?( geral)?:?$"),
    re.compile(r"^filtros? aplicados?\b"),
)

_MESES_PT = ('jan', 'fev', 'mar', 'abr', 'mai', 'jun', 'jul', 'ago', 'set', 'out', 'nov', 'dez')
_MESES_EN = ('jan', 'feb', 'mar', 'apr', 'may', 'jun', 'jul', 'aug', 'sep', 'oct', 'nov', 'dec')


class ErroParseNumero(ValueError):
    """Valor numérico que não pôde ser convertido."""

    def __init__(self, contexto, valor):
        self.contexto = contexto
        self.valor = valor
        super().__init__(f'{contexto}: valor numerico invalido {valor!r}')


def normalizar_texto(valor):
    if valor is None:
        return ''
    return str(valor).strip()


def parse_numero_local(valor, contexto='valor'):
    """Converte ``"1.234,56"`` em ``1234.56``.

    Vazio ou ausente vale ``0.0``. Pontos são separadores de milhar quando há
    vírgula decimal ou quando formam grupos de três dígitos; um ponto isolado
    (``"1500.50"``) é tratado como separador decimal.
    """
    if valor is None or isinstance(valor, bool):
        return 0.0
    if isinstance(valor, (int, float, Decimal)):
        return float(valor)

    texto = str(valor).strip()
    texto = texto.replace('R$', '').replace('\xa0', '').replace(' ', '')
    if texto == '':
        return 0.0
    if not _RESIDUO_NUMERICO.match(texto):
        raise ErroParseNumero(contexto, valor)

    if ',' in texto:
        texto = texto.replace('.', '').replace(',', '.')
    elif _AGRUPAMENTO_MILHAR.match(texto):
        texto = texto.replace('.', '')

    try:
        return float(texto)
    except ValueError:
        raise ErroParseNumero(contexto, valor) from None


def parse_data_local(valor):
    """Aceita ``dd/mm/aaaa`` ou ``aaaa-mm-dd``; qualquer outra coisa vira None."""
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    texto = str(valor).strip()
    if not texto:
        return None
    for formato, tamanho in (('%d/%m/%Y', None), ('%Y-%m-%d', 10)):
        candidato = texto
        if tamanho and len(texto) > tamanho and texto[tamanho] in 'T ':
            candidato = texto[:tamanho]
        try:
            return datetime.strptime(candidato, formato).date()
        except ValueError:
            continue
    return None


def parse_inteiro(valor):
    """Converte valores para inteiro ou retorna None se vazio."""
    texto = normalizar_texto(valor)
    if texto == '' or texto.lower() == 'none':
        return None
    try:
        return int(float(texto.replace(',', '.')))
    except (TypeError, ValueError):
        return None


def linha_lixo(valor):
    """Identifica rodapés e cabeçalhos de relatório ("Total", "Filtros aplicados")."""
    texto = normalizar_texto(valor).lower()
    if not texto:
        return True
    return any(padrao.search(texto) for padrao in _PADROES_LIXO)


def normalizar_parcela(valor):
    """Normaliza a parcela para ``atual/total``.

    Planilhas costumam transformar ``1/1`` em data (``01-Jan``); o mês é
    recuperado pelo nome.
    """
    texto = normalizar_texto(valor)
    if not texto:
        return ''
    if re.match(r"^\d+/\d+$", texto) or re.match(r"^\d+$", texto):
        return texto

    minusculo = texto.lower()
    for indice, (pt, en) in enumerate(zip(_MESES_PT, _MESES_EN), start=1):
        if pt in minusculo or en in minusculo:
            numero = re.search(r"(\d+)", minusculo)
            if numero:
                return f'{int(numero.group(1))}/{indice}'
            break
    return texto


def mapear_status(valor, tipo='receivable'):
    """Converte o status da planilha para o conjunto canônico do tipo."""
    texto = normalizar_texto(valor).lower()
    liquidado = any(chave in texto for chave in ('liquidado', 'pago', 'baixado', 'paid'))
    cancelado = 'cancel' in texto

    if tipo == 'payable':
        if liquidado:
            return 'paid'
        if cancelado:
            return 'cancelled'
        if 'overdue' in texto:
            return 'overdue'
        return 'pending'

    if liquidado:
        return 'Liquidado'
    if cancelado:
        return 'Cancelado'
    return 'Aberto'


def validar_cpf_cnpj(valor):
    digitos = re.sub(r'\D', '', normalizar_texto(valor))
    if len(digitos) == 11:
        return cpf_validator.validate(digitos)
    if len(digitos) == 14:
        return cnpj_validator.validate(digitos)
    return False
