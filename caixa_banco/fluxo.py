"""Recalculo diário do fluxo de caixa.

Cada dia da janela tem saldo de abertura, movimento do dia e saldo
acumulado. O saldo de abertura de um dia é o saldo bancário informado para
aquela data, quando existir, ou o acumulado do dia anterior; por isso uma
alteração no dia ``k`` se propaga para todos os dias seguintes e nunca para
os anteriores.

As funções deste módulo são puras: recebem coleções já carregadas e devolvem
novas listas de :class:`DiaFluxo`, sem acessar o banco de dados.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

MENSAGEM_ALERTA = 'Saldo projetado negativo: necessidade de caixa'

STATUS_RECEBIVEIS_ABERTOS = {'Aberto'}
STATUS_PAGAVEIS_ABERTOS = {'pending', 'overdue'}
STATUS_IMPORTACOES_ENCERRADAS = {'Completed', 'Cancelled'}


@dataclass
class DiaFluxo:
    data: date
    opening_balance: float = 0.0
    total_receivables: float = 0.0
    total_payables: float = 0.0
    imports: float = 0.0
    other_expenses: float = 0.0
    daily_balance: float = 0.0
    accumulated_balance: float = 0.0
    has_alert: bool = False
    alert_message: Optional[str] = None
    is_projected: bool = False
    is_weekend: bool = False

    def como_dict(self):
        return {
            'date': self.data.isoformat(),
            'opening_balance': self.opening_balance,
            'total_receivables': self.total_receivables,
            'total_payables': self.total_payables,
            'imports': self.imports,
            'other_expenses': self.other_expenses,
            'daily_balance': self.daily_balance,
            'accumulated_balance': self.accumulated_balance,
            'has_alert': self.has_alert,
            'alert_message': self.alert_message,
            'is_projected': self.is_projected,
            'is_weekend': self.is_weekend,
        }


def _campo(obj, nome, padrao=None):
    if isinstance(obj, dict):
        return obj.get(nome, padrao)
    return getattr(obj, nome, padrao)


def _centavos(valor):
    return round(float(valor or 0), 2)


def montar_esqueleto(hoje=None, dias_historico=15, dias_projecao=90, saldo_inicial=0.0):
    """Cria os dias vazios da janela ``[hoje - historico, hoje + projecao]``.

    O primeiro dia carrega ``saldo_inicial`` como abertura; é a semente usada
    quando não há saldo bancário informado nessa data.
    """
    hoje = hoje or date.today()
    inicio = hoje - timedelta(days=dias_historico)
    total = dias_historico + dias_projecao + 1
    dias = [DiaFluxo(data=inicio + timedelta(days=i)) for i in range(total)]
    if dias:
        dias[0].opening_balance = _centavos(saldo_inicial)
    return dias


def saldos_por_data(saldos: Iterable) -> Dict[date, float]:
    """Consolida os saldos bancários por data.

    Para o mesmo par (conta, data) vale o último cadastrado; contas
    diferentes na mesma data são somadas.
    """
    ultimos = {}
    for saldo in saldos:
        chave = (_campo(saldo, 'bank_id'), _campo(saldo, 'reference_date'))
        ordem = (_campo(saldo, 'created_at') or datetime.min, _campo(saldo, 'id') or 0)
        atual = ultimos.get(chave)
        if atual is None or ordem >= atual[0]:
            ultimos[chave] = (ordem, saldo)

    totais: Dict[date, float] = {}
    for (_, data_ref), (_, saldo) in ultimos.items():
        totais[data_ref] = _centavos(totais.get(data_ref, 0.0) + float(_campo(saldo, 'amount') or 0))
    return totais


def saldo_consolidado_antes(saldos: Iterable, data_limite: date) -> float:
    """Soma do último saldo de cada conta informado antes de ``data_limite``."""
    ultimos = {}
    for saldo in saldos:
        data_ref = _campo(saldo, 'reference_date')
        if data_ref is None or data_ref >= data_limite:
            continue
        ordem = (data_ref, _campo(saldo, 'created_at') or datetime.min, _campo(saldo, 'id') or 0)
        conta = _campo(saldo, 'bank_id')
        if conta not in ultimos or ordem >= ultimos[conta][0]:
            ultimos[conta] = (ordem, saldo)
    return _centavos(sum(float(_campo(s, 'amount') or 0) for _, s in ultimos.values()))


def _totais_por_vencimento(titulos, campo_status, abertos, campo_total):
    totais: Dict[date, float] = {}
    for titulo in titulos:
        if _campo(titulo, campo_status) not in abertos:
            continue
        vencimento = _campo(titulo, 'due_date')
        if vencimento is None:
            continue
        totais[vencimento] = totais.get(vencimento, 0.0) + float(_campo(titulo, campo_total) or 0)
    return totais


def recebiveis_por_data(recebiveis):
    return _totais_por_vencimento(recebiveis, 'title_status', STATUS_RECEBIVEIS_ABERTOS, 'updated_value')


def pagaveis_por_data(pagaveis):
    return _totais_por_vencimento(pagaveis, 'status', STATUS_PAGAVEIS_ABERTOS, 'amount')


def custo_importacao(importacao):
    """Desembolso em reais: moeda estrangeira vezes câmbio mais os custos locais."""
    mercadoria = float(_campo(importacao, 'foreign_currency_value') or 0) * float(
        _campo(importacao, 'exchange_rate') or 0
    )
    custos = sum(
        float(_campo(importacao, campo) or 0)
        for campo in ('logistics_costs', 'taxes', 'nationalization_costs')
    )
    return _centavos(mercadoria + custos)


def importacoes_por_data(importacoes):
    totais: Dict[date, float] = {}
    for importacao in importacoes:
        if _campo(importacao, 'status') in STATUS_IMPORTACOES_ENCERRADAS:
            continue
        chegada = _campo(importacao, 'expected_arrival_date')
        if chegada is None:
            continue
        totais[chegada] = totais.get(chegada, 0.0) + custo_importacao(importacao)
    return totais


def recalcular_fluxo(
    dias: List[DiaFluxo],
    recebiveis: Iterable = (),
    pagaveis: Iterable = (),
    saldos: Iterable = (),
    importacoes: Optional[Dict[date, float]] = None,
    outras_despesas: Optional[Dict[date, float]] = None,
    hoje: Optional[date] = None,
    a_partir_de: Optional[date] = None,
) -> List[DiaFluxo]:
    """Recalcula abertura, movimento, acumulado e alertas de cada dia.

    ``dias`` é o esqueleto da janela; o saldo de abertura do primeiro dia é
    usado como semente. Com ``a_partir_de`` os dias anteriores a essa data
    são mantidos como estão e a propagação recomeça do acumulado do dia
    anterior, o que produz o mesmo resultado do recálculo completo desde que
    o prefixo já esteja calculado.
    """
    hoje = hoje or date.today()
    importacoes = importacoes or {}
    outras_despesas = outras_despesas or {}

    entradas = recebiveis_por_data(recebiveis)
    saidas = pagaveis_por_data(pagaveis)
    overrides = saldos_por_data(saldos)

    ordenados = sorted(dias, key=lambda d: d.data)
    resultado: List[DiaFluxo] = []
    anterior: Optional[DiaFluxo] = None

    for indice, dia in enumerate(ordenados):
        if a_partir_de is not None and dia.data < a_partir_de:
            mantido = replace(dia)
            resultado.append(mantido)
            anterior = mantido
            continue

        if dia.data in overrides:
            abertura = overrides[dia.data]
        elif indice == 0 or anterior is None:
            abertura = _centavos(dia.opening_balance)
        else:
            abertura = anterior.accumulated_balance

        receber = _centavos(entradas.get(dia.data))
        pagar = _centavos(saidas.get(dia.data))
        importar = _centavos(importacoes.get(dia.data))
        outras = _centavos(outras_despesas.get(dia.data))
        movimento = _centavos(receber - pagar - importar - outras)
        acumulado = _centavos(abertura + movimento)
        alerta = acumulado < 0

        novo = DiaFluxo(
            data=dia.data,
            opening_balance=abertura,
            total_receivables=receber,
            total_payables=pagar,
            imports=importar,
            other_expenses=outras,
            daily_balance=movimento,
            accumulated_balance=acumulado,
            has_alert=alerta,
            alert_message=MENSAGEM_ALERTA if alerta else None,
            is_projected=dia.data > hoje,
            is_weekend=dia.data.weekday() >= 5,
        )
        resultado.append(novo)
        anterior = novo

    return resultado


def filtrar_periodo(dias: Iterable[DiaFluxo], inicio: Optional[date] = None, fim: Optional[date] = None):
    """Dias dentro de ``[inicio, fim]``; limites ausentes não filtram."""
    return [
        d for d in dias
        if (inicio is None or d.data >= inicio) and (fim is None or d.data <= fim)
    ]
