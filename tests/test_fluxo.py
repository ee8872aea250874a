from datetime import date, datetime, timedelta
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from caixa_banco.fluxo import (
    MENSAGEM_ALERTA,
    custo_importacao,
    filtrar_periodo,
    importacoes_por_data,
    montar_esqueleto,
    recalcular_fluxo,
    saldo_consolidado_antes,
    saldos_por_data,
)

HOJE = date(2024, 6, 10)


def esqueleto(saldo_inicial=0.0, historico=5, projecao=10):
    return montar_esqueleto(HOJE, historico, projecao, saldo_inicial)


def dia(dias, data_ref):
    return next(d for d in dias if d.data == data_ref)


def test_esqueleto_cobre_janela_sem_lacunas():
    dias = esqueleto(historico=5, projecao=10)
    assert len(dias) == 16
    assert dias[0].data == HOJE - timedelta(days=5)
    assert dias[-1].data == HOJE + timedelta(days=10)
    for anterior, atual in zip(dias, dias[1:]):
        assert atual.data - anterior.data == timedelta(days=1)


@pytest.mark.parametrize('semente, alerta', [(250.0, False), (0.0, False), (-10.0, True)])
def test_sem_movimentos_linha_plana(semente, alerta):
    dias = recalcular_fluxo(esqueleto(semente), hoje=HOJE)
    assert all(d.accumulated_balance == semente for d in dias)
    assert all(d.has_alert is alerta for d in dias)


def test_saldos_mesma_data_contas_diferentes_somam():
    saldos = [
        {'id': 1, 'bank_id': 1, 'reference_date': HOJE, 'amount': 1000},
        {'id': 2, 'bank_id': 2, 'reference_date': HOJE, 'amount': 500},
    ]
    dias = recalcular_fluxo(esqueleto(), saldos=saldos, hoje=HOJE)
    assert dia(dias, HOJE).opening_balance == 1500.0


def test_saldos_mesma_conta_mesma_data_vale_o_ultimo():
    saldos = [
        {'id': 1, 'bank_id': 1, 'reference_date': HOJE, 'amount': 1000, 'created_at': datetime(2024, 6, 10, 9)},
        {'id': 2, 'bank_id': 1, 'reference_date': HOJE, 'amount': 700, 'created_at': datetime(2024, 6, 10, 11)},
    ]
    assert saldos_por_data(saldos) == {HOJE: 700.0}


def test_empate_de_horario_desfeito_pelo_id():
    instante = datetime(2024, 6, 10, 9)
    saldos = [
        {'id': 2, 'bank_id': 1, 'reference_date': HOJE, 'amount': 300, 'created_at': instante},
        {'id': 1, 'bank_id': 1, 'reference_date': HOJE, 'amount': 100, 'created_at': instante},
    ]
    assert saldos_por_data(saldos) == {HOJE: 300.0}


def test_pagavel_vencendo_hoje_gera_alerta():
    saldos = [{'id': 1, 'bank_id': 1, 'reference_date': HOJE, 'amount': 100}]
    pagaveis = [{'status': 'pending', 'due_date': HOJE, 'amount': 200}]
    dias = recalcular_fluxo(esqueleto(), pagaveis=pagaveis, saldos=saldos, hoje=HOJE)
    hoje = dia(dias, HOJE)
    assert hoje.daily_balance == -200.0
    assert hoje.accumulated_balance == -100.0
    assert hoje.has_alert is True
    assert hoje.alert_message == MENSAGEM_ALERTA


def test_apenas_movimentos_abertos_entram():
    recebiveis = [
        {'title_status': 'Aberto', 'due_date': HOJE, 'updated_value': 100},
        {'title_status': 'Liquidado', 'due_date': HOJE, 'updated_value': 999},
        {'title_status': 'Cancelado', 'due_date': HOJE, 'updated_value': 999},
    ]
    pagaveis = [
        {'status': 'overdue', 'due_date': HOJE, 'amount': 30},
        {'status': 'paid', 'due_date': HOJE, 'amount': 999},
    ]
    dias = recalcular_fluxo(esqueleto(), recebiveis=recebiveis, pagaveis=pagaveis, hoje=HOJE)
    hoje = dia(dias, HOJE)
    assert hoje.total_receivables == 100.0
    assert hoje.total_payables == 30.0
    assert hoje.daily_balance == 70.0


def test_importacoes_e_outras_despesas_subtraem():
    dias = recalcular_fluxo(
        esqueleto(1000.0),
        importacoes={HOJE: 100.0},
        outras_despesas={HOJE: 50.25},
        hoje=HOJE,
    )
    assert dia(dias, HOJE).daily_balance == -150.25
    assert dias[-1].accumulated_balance == 849.75


def test_remover_saldo_volta_ao_acumulado_anterior():
    base = esqueleto(100.0)
    quinto = base[4].data
    recebiveis = [{'title_status': 'Aberto', 'due_date': base[1].data, 'updated_value': 40}]
    saldos = [{'id': 1, 'bank_id': 1, 'reference_date': quinto, 'amount': 5000}]

    com_saldo = recalcular_fluxo(base, recebiveis=recebiveis, saldos=saldos, hoje=HOJE)
    assert dia(com_saldo, quinto).opening_balance == 5000.0

    sem_saldo = recalcular_fluxo(base, recebiveis=recebiveis, saldos=[], hoje=HOJE)
    assert dia(sem_saldo, quinto).opening_balance == dia(sem_saldo, base[3].data).accumulated_balance
    assert dia(sem_saldo, quinto).opening_balance == 140.0


def test_alteracao_no_dia_k_nao_afeta_dias_anteriores():
    base = esqueleto(100.0)
    k = base[7].data
    antes = recalcular_fluxo(base, hoje=HOJE)
    depois = recalcular_fluxo(
        base,
        pagaveis=[{'status': 'pending', 'due_date': k, 'amount': 80}],
        saldos=[{'id': 1, 'bank_id': 1, 'reference_date': k, 'amount': 10}],
        hoje=HOJE,
    )
    for a, b in zip(antes, depois):
        if a.data < k:
            assert a.accumulated_balance == b.accumulated_balance
    assert dia(depois, k).accumulated_balance == -70.0
    assert depois[-1].accumulated_balance == -70.0


def test_recalculo_incremental_igual_ao_completo():
    base = esqueleto(100.0)
    recebiveis = [
        {'title_status': 'Aberto', 'due_date': base[2].data, 'updated_value': 10.1},
        {'title_status': 'Aberto', 'due_date': base[9].data, 'updated_value': 20.2},
    ]
    pagaveis = [{'status': 'pending', 'due_date': base[6].data, 'amount': 33.3}]
    primeiro = recalcular_fluxo(base, recebiveis=recebiveis, hoje=HOJE)

    completo = recalcular_fluxo(base, recebiveis=recebiveis, pagaveis=pagaveis, hoje=HOJE)
    incremental = recalcular_fluxo(
        primeiro, recebiveis=recebiveis, pagaveis=pagaveis, hoje=HOJE, a_partir_de=base[6].data
    )
    assert [d.como_dict() for d in incremental] == [d.como_dict() for d in completo]


def test_valores_arredondados_em_centavos():
    recebiveis = [
        {'title_status': 'Aberto', 'due_date': HOJE, 'updated_value': 0.1},
        {'title_status': 'Aberto', 'due_date': HOJE, 'updated_value': 0.2},
    ]
    dias = recalcular_fluxo(esqueleto(), recebiveis=recebiveis, hoje=HOJE)
    assert dia(dias, HOJE).total_receivables == 0.3


def test_marcacoes_projecao_e_fim_de_semana():
    dias = recalcular_fluxo(esqueleto(), hoje=HOJE)
    assert dia(dias, HOJE).is_projected is False
    assert dia(dias, HOJE + timedelta(days=1)).is_projected is True
    assert dia(dias, date(2024, 6, 8)).is_weekend is True
    assert dia(dias, date(2024, 6, 10)).is_weekend is False


def test_saldo_consolidado_antes():
    saldos = [
        {'id': 1, 'bank_id': 1, 'reference_date': date(2024, 5, 1), 'amount': 100},
        {'id': 2, 'bank_id': 1, 'reference_date': date(2024, 5, 20), 'amount': 300},
        {'id': 3, 'bank_id': 2, 'reference_date': date(2024, 5, 2), 'amount': 50},
        {'id': 4, 'bank_id': 2, 'reference_date': date(2024, 6, 5), 'amount': 999},
    ]
    assert saldo_consolidado_antes(saldos, date(2024, 6, 1)) == 350.0
    assert saldo_consolidado_antes(saldos, date(2024, 5, 1)) == 0.0


def test_filtrar_periodo():
    dias = esqueleto()
    filtrados = filtrar_periodo(dias, HOJE, HOJE + timedelta(days=2))
    assert [d.data for d in filtrados] == [HOJE + timedelta(days=i) for i in range(3)]
    assert filtrar_periodo(dias) == dias


def test_importacoes_por_data_ignora_encerradas_e_sem_chegada():
    chegada = HOJE + timedelta(days=2)
    importacoes = [
        {'foreign_currency_value': 100, 'exchange_rate': 5, 'taxes': 20,
         'status': 'In Transit', 'expected_arrival_date': chegada},
        {'foreign_currency_value': 10, 'exchange_rate': 5, 'logistics_costs': 5,
         'status': 'Pending', 'expected_arrival_date': chegada},
        {'foreign_currency_value': 999, 'exchange_rate': 5,
         'status': 'Cancelled', 'expected_arrival_date': chegada},
        {'foreign_currency_value': 999, 'exchange_rate': 5,
         'status': 'Completed', 'expected_arrival_date': chegada},
        {'foreign_currency_value': 999, 'exchange_rate': 5, 'status': 'Pending'},
    ]
    assert custo_importacao(importacoes[0]) == 520.0
    assert importacoes_por_data(importacoes) == {chegada: 575.0}
