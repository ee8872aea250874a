"""Saneamento de linhas de planilha para o esquema canônico.

Cada linha passa pelo mapeamento de colunas e pelos conversores locais.
Falhas de conversão em campos não identificadores não derrubam a linha: o
campo fica zerado (ou vazio) e a falha é anotada. A linha só é descartada
quando falta um campo identificador ou quando ele é lixo de relatório
("Total", "Filtros aplicados"); o descarte vira um registro de rejeição
local para que chegue ao relatório de rejeitados.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .colunas import ALIASES, indexar_linha, resolver_campo
from .parsers import (
    ErroParseNumero,
    linha_lixo,
    mapear_status,
    normalizar_parcela,
    normalizar_texto,
    parse_data_local,
    parse_inteiro,
    parse_numero_local,
    validar_cpf_cnpj,
)

# A primeira linha da planilha é o cabeçalho; a primeira linha de dados é a 2.
PRIMEIRA_LINHA_DADOS = 2

CAMPOS_VALOR = ('principal_value', 'fine', 'interest')
CAMPOS_DATA = ('issue_date', 'due_date', 'payment_prediction')


@dataclass(frozen=True)
class Esquema:
    tipo: str
    identificadores: tuple
    campo_total: str
    campo_status: str


ESQUEMAS = {
    'receivable': Esquema('receivable', ('invoice_number', 'customer'), 'updated_value', 'title_status'),
    'payable': Esquema('payable', ('document_number', 'entity_name'), 'amount', 'status'),
}


@dataclass
class AnotacaoLinha:
    row_number: int
    erros: Dict[str, str] = field(default_factory=dict)
    raw: dict = field(default_factory=dict)


@dataclass
class Descarte:
    row_number: int
    reason: str
    raw: dict = field(default_factory=dict)


@dataclass
class EstadoLeitura:
    """Acumulador explícito do preenchimento da coluna Empresa."""

    ultima_empresa: str = ''

    def preencher_empresa(self, valor):
        empresa = normalizar_texto(valor)
        if empresa:
            self.ultima_empresa = empresa
            return empresa
        return self.ultima_empresa


@dataclass
class ResultadoSanitizacao:
    tipo: str
    registros: List[dict] = field(default_factory=list)
    anotacoes: List[AnotacaoLinha] = field(default_factory=list)
    descartes: List[Descarte] = field(default_factory=list)

    @property
    def total_linhas(self):
        return len(self.registros) + len(self.descartes)


def esquema_de(tipo):
    try:
        return ESQUEMAS[tipo]
    except KeyError:
        raise ValueError(f'Tipo de importacao invalido: {tipo}') from None


def motivo_descarte(valores, esquema):
    """Código de rejeição para a linha, ou None se ela segue adiante."""
    for campo in esquema.identificadores:
        texto = normalizar_texto(valores.get(campo))
        if texto and linha_lixo(texto):
            return 'linha_invalida'
    for campo in esquema.identificadores:
        if not normalizar_texto(valores.get(campo)):
            return f'{campo}_vazio'
    return None


def sanitizar_linha(linha, tipo, row_number, estado=None):
    """Devolve ``(registro, anotacao)`` ou ``(None, descarte)``."""
    esquema = esquema_de(tipo)
    estado = estado if estado is not None else EstadoLeitura()
    bruto = dict(linha) if isinstance(linha, dict) else {'valor': linha}

    if not isinstance(linha, dict):
        return None, Descarte(row_number, 'linha_invalida', bruto)

    indice = indexar_linha(linha)
    valores = {
        campo: resolver_campo(linha, aliases, indice)
        for campo, aliases in ALIASES[tipo].items()
    }
    empresa = estado.preencher_empresa(valores.get('company'))

    motivo = motivo_descarte(valores, esquema)
    if motivo:
        return None, Descarte(row_number, motivo, bruto)

    anotacao = AnotacaoLinha(row_number=row_number, raw=bruto)
    registro = {}
    for campo, bruto_campo in valores.items():
        if campo == 'company':
            registro[campo] = empresa
        elif campo in CAMPOS_VALOR or campo == esquema.campo_total:
            try:
                registro[campo] = parse_numero_local(bruto_campo, contexto=campo)
            except ErroParseNumero:
                registro[campo] = 0.0
                anotacao.erros[campo] = 'valor_invalido'
        elif campo in CAMPOS_DATA:
            registro[campo] = parse_data_local(bruto_campo)
            if registro[campo] is None and normalizar_texto(bruto_campo):
                anotacao.erros[campo] = 'data_invalida'
        elif campo == esquema.campo_status:
            registro[campo] = mapear_status(bruto_campo, tipo)
        elif campo == 'installment':
            registro[campo] = normalizar_parcela(bruto_campo)
        elif campo == 'days_overdue':
            registro[campo] = parse_inteiro(bruto_campo) or 0
        else:
            registro[campo] = normalizar_texto(bruto_campo)

    if not registro[esquema.campo_total]:
        registro[esquema.campo_total] = round(sum(registro[c] for c in CAMPOS_VALOR), 2)

    documento = registro.get('customer_doc')
    if documento and not validar_cpf_cnpj(documento):
        anotacao.erros['customer_doc'] = 'documento_invalido'

    return registro, anotacao


def sanitizar_linhas(linhas, tipo, primeira_linha: Optional[int] = None,
                     numeros: Optional[List[int]] = None):
    """Saneia todas as linhas mantendo a ordem de entrada.

    ``numeros`` informa o número de cada linha na planilha quando as linhas
    chegam fora da sequência (por exemplo, já separadas por empresa).
    """
    esquema_de(tipo)
    inicio = PRIMEIRA_LINHA_DADOS if primeira_linha is None else primeira_linha
    estado = EstadoLeitura()
    resultado = ResultadoSanitizacao(tipo=tipo)

    for deslocamento, linha in enumerate(linhas):
        numero = numeros[deslocamento] if numeros is not None else inicio + deslocamento
        registro, detalhe = sanitizar_linha(linha, tipo, numero, estado)
        if registro is None:
            resultado.descartes.append(detalhe)
        else:
            resultado.registros.append(registro)
            resultado.anotacoes.append(detalhe)
    return resultado
