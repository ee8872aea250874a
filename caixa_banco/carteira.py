"""Carteira de caixa de uma empresa.

Mantém em memória recebíveis, pagáveis, saldos informados, importações de
produto e os dias do fluxo. Toda alteração passa pelo banco e termina com o
recálculo do fluxo, de modo que ``dias`` nunca fica desatualizado em relação
às coleções.
"""

import threading
from contextlib import contextmanager
from datetime import date, timedelta

from flask import current_app

from importacao.colunas import ALIAS_EMPRESA, resolver_campo
from importacao.persistencia import persistir
from importacao.sanitizador import (
    PRIMEIRA_LINHA_DADOS,
    Descarte,
    EstadoLeitura,
    sanitizar_linha,
    sanitizar_linhas,
)
from titulos import services as titulos_services
from . import services
from .fluxo import (
    filtrar_periodo,
    importacoes_por_data,
    montar_esqueleto,
    recalcular_fluxo,
    saldo_consolidado_antes,
)


class ImportacaoEmAndamento(RuntimeError):
    """Já existe uma importação rodando para a empresa."""

    def __init__(self, empresa_id):
        self.empresa_id = empresa_id
        super().__init__(f'Importacao em andamento para a empresa {empresa_id}')


_travas = {}
_travas_guarda = threading.Lock()


@contextmanager
def trava_importacao(empresa_id):
    """Garante uma única importação por empresa; não espera pela trava."""
    with _travas_guarda:
        trava = _travas.setdefault(empresa_id, threading.Lock())
    if not trava.acquire(blocking=False):
        raise ImportacaoEmAndamento(empresa_id)
    try:
        yield
    finally:
        trava.release()


class CarteiraCaixa:
    def __init__(self, empresa_id, hoje=None, dias_historico=None, dias_projecao=None):
        self.empresa_id = empresa_id
        self._hoje = hoje
        if dias_historico is None:
            dias_historico = current_app.config.get('CASH_FLOW_DIAS_HISTORICO', 15)
        if dias_projecao is None:
            dias_projecao = current_app.config.get('CASH_FLOW_DIAS_PROJECAO', 90)
        self.dias_historico = dias_historico
        self.dias_projecao = dias_projecao
        self.recebiveis = []
        self.pagaveis = []
        self.saldos = []
        self.importacoes_produto = []
        self.dias = []
        self.ultima_importacao = None

    @property
    def hoje(self):
        return self._hoje or date.today()

    @property
    def inicio(self):
        return self.hoje - timedelta(days=self.dias_historico)

    # ------------------------------------------------------------------
    # Carga e recálculo
    # ------------------------------------------------------------------
    def carregar(self):
        self.recebiveis = titulos_services.listar_titulos('receivable', self.empresa_id)
        self.pagaveis = titulos_services.listar_titulos('payable', self.empresa_id)
        self.saldos = services.listar_saldos(self.empresa_id)
        self.importacoes_produto = services.listar_importacoes_produto(self.empresa_id)
        self.recalcular()
        return self

    def esqueleto(self):
        return montar_esqueleto(
            hoje=self.hoje,
            dias_historico=self.dias_historico,
            dias_projecao=self.dias_projecao,
            saldo_inicial=saldo_consolidado_antes(self.saldos, self.inicio),
        )

    def recalcular(self, a_partir_de=None):
        """Refaz o fluxo; com ``a_partir_de`` reaproveita os dias anteriores."""
        dias = self.esqueleto()
        if a_partir_de is not None and self.dias and a_partir_de > dias[0].data:
            anteriores = {d.data: d for d in self.dias if d.data < a_partir_de}
            dias = [anteriores.get(d.data, d) for d in dias]
        else:
            a_partir_de = None
        self.dias = recalcular_fluxo(
            dias,
            recebiveis=self.recebiveis,
            pagaveis=self.pagaveis,
            saldos=self.saldos,
            importacoes=importacoes_por_data(self.importacoes_produto),
            hoje=self.hoje,
            a_partir_de=a_partir_de,
        )
        return self.dias

    def _recarregar(self, tipo):
        if tipo == 'receivable':
            self.recebiveis = titulos_services.listar_titulos('receivable', self.empresa_id)
        elif tipo == 'payable':
            self.pagaveis = titulos_services.listar_titulos('payable', self.empresa_id)
        elif tipo == 'importacao':
            self.importacoes_produto = services.listar_importacoes_produto(self.empresa_id)
        else:
            self.saldos = services.listar_saldos(self.empresa_id)
        self.recalcular()

    # ------------------------------------------------------------------
    # Recebíveis e pagáveis
    # ------------------------------------------------------------------
    def _adicionar_titulo(self, tipo, dados):
        titulo = titulos_services.criar_titulo(tipo, self.empresa_id, dados)
        self._recarregar(tipo)
        return titulo

    def _atualizar_titulo(self, tipo, titulo_id, dados):
        titulo = titulos_services.obter_titulo(tipo, titulo_id, self.empresa_id)
        titulos_services.atualizar_titulo(titulo, dados)
        self._recarregar(tipo)
        return titulo

    def _excluir_titulo(self, tipo, titulo_id):
        titulo = titulos_services.obter_titulo(tipo, titulo_id, self.empresa_id)
        titulos_services.deletar_titulo(titulo)
        self._recarregar(tipo)

    def adicionar_recebivel(self, dados):
        return self._adicionar_titulo('receivable', dados)

    def atualizar_recebivel(self, titulo_id, dados):
        return self._atualizar_titulo('receivable', titulo_id, dados)

    def excluir_recebivel(self, titulo_id):
        self._excluir_titulo('receivable', titulo_id)

    def adicionar_pagavel(self, dados):
        return self._adicionar_titulo('payable', dados)

    def atualizar_pagavel(self, titulo_id, dados):
        return self._atualizar_titulo('payable', titulo_id, dados)

    def excluir_pagavel(self, titulo_id):
        self._excluir_titulo('payable', titulo_id)

    # ------------------------------------------------------------------
    # Saldos bancários
    # ------------------------------------------------------------------
    def adicionar_saldo(self, dados):
        saldo = services.criar_saldo(self.empresa_id, dados)
        self._recarregar('saldo')
        return saldo

    def atualizar_saldo(self, saldo_id, dados):
        saldo = services.obter_saldo(saldo_id, self.empresa_id)
        services.atualizar_saldo(saldo, dados)
        self._recarregar('saldo')
        return saldo

    def excluir_saldo(self, saldo_id):
        saldo = services.obter_saldo(saldo_id, self.empresa_id)
        services.deletar_saldo(saldo)
        self._recarregar('saldo')

    # ------------------------------------------------------------------
    # Importações de produto
    # ------------------------------------------------------------------
    def adicionar_importacao_produto(self, dados):
        importacao = services.criar_importacao_produto(self.empresa_id, dados)
        self._recarregar('importacao')
        return importacao

    def atualizar_importacao_produto(self, importacao_id, dados):
        importacao = services.obter_importacao_produto(importacao_id, self.empresa_id)
        services.atualizar_importacao_produto(importacao, dados)
        self._recarregar('importacao')
        return importacao

    def excluir_importacao_produto(self, importacao_id):
        importacao = services.obter_importacao_produto(importacao_id, self.empresa_id)
        services.deletar_importacao_produto(importacao)
        self._recarregar('importacao')

    # ------------------------------------------------------------------
    # Importação
    # ------------------------------------------------------------------
    def importar(self, tipo, linhas, nome_arquivo=None, backend=None, numeros=None, descartes=()):
        """Saneia, grava e recarrega, nessa ordem, sob a trava da empresa.

        ``descartes`` são rejeições já decididas fora do saneamento (linhas
        sem empresa, por exemplo) que devem entrar no mesmo lote.
        """
        with trava_importacao(self.empresa_id):
            sanitizacao = sanitizar_linhas(linhas, tipo, numeros=numeros)
            if descartes:
                sanitizacao.descartes = sorted(
                    [*descartes, *sanitizacao.descartes], key=lambda d: d.row_number
                )
            resultado = persistir(self.empresa_id, tipo, sanitizacao, nome_arquivo, backend)
            if resultado.success:
                self.carregar()
            else:
                current_app.logger.warning(
                    'Importacao de %s da empresa %s nao gravada: %s',
                    tipo, self.empresa_id, resultado.mensagem,
                )
            self.ultima_importacao = sanitizacao
            return resultado

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------
    def anomalias(self):
        encontradas = []
        for tipo, titulos in (('receivable', self.recebiveis), ('payable', self.pagaveis)):
            for titulo in titulos:
                codigos = titulo.anomalias()
                if codigos:
                    encontradas.append({'tipo': tipo, 'id': titulo.id, 'anomalias': codigos})
        return encontradas

    def marcar_vencidos(self, hoje=None):
        quantidade = titulos_services.marcar_pagaveis_vencidos(self.empresa_id, hoje or self.hoje)
        if quantidade:
            self._recarregar('payable')
        return quantidade

    def dias_no_periodo(self, inicio=None, fim=None):
        return filtrar_periodo(self.dias, inicio, fim)

    def resumo(self, inicio=None, fim=None):
        dias = self.dias_no_periodo(inicio, fim)
        return {
            'total_receivables': round(sum(d.total_receivables for d in dias), 2),
            'total_payables': round(sum(d.total_payables for d in dias), 2),
            'total_imports': round(sum(d.imports for d in dias), 2),
            'saldo_final': dias[-1].accumulated_balance if dias else 0.0,
            'dias_com_alerta': sum(1 for d in dias if d.has_alert),
        }


def separar_por_empresa(linhas, tipo):
    """Agrupa as linhas pela coluna Empresa, preenchida para baixo.

    Devolve ``(grupos, sem_empresa)``: ``grupos`` é ``{nome: (linhas, numeros)}``
    na ordem em que as empresas aparecem; ``sem_empresa`` lista os descartes
    das linhas anteriores à primeira empresa informada. Lixo de relatório
    sai como ``linha_invalida``; o resto, como ``empresa_vazia``.
    """
    estado = EstadoLeitura()
    grupos = {}
    sem_empresa = []
    for deslocamento, linha in enumerate(linhas):
        numero = PRIMEIRA_LINHA_DADOS + deslocamento
        valor = resolver_campo(linha, ALIAS_EMPRESA) if isinstance(linha, dict) else None
        empresa = estado.preencher_empresa(valor)
        if not empresa:
            registro, detalhe = sanitizar_linha(linha, tipo, numero)
            if registro is None and detalhe.reason == 'linha_invalida':
                sem_empresa.append(detalhe)
            else:
                bruto = dict(linha) if isinstance(linha, dict) else {'valor': linha}
                sem_empresa.append(Descarte(numero, 'empresa_vazia', bruto))
            continue
        destino = grupos.setdefault(empresa, ([], []))
        destino[0].append(linha)
        destino[1].append(numero)
    return grupos, sem_empresa


def importar_planilha(tipo, linhas, nome_arquivo=None, empresa_id=None, backend=None):
    """Importa a planilha para uma empresa ou, sem ``empresa_id``, por empresa da coluna.

    Linhas sem empresa entram como rejeitadas no lote da primeira empresa.
    Sem nenhuma empresa na planilha nada é gravado e o retorno é vazio.
    """
    if empresa_id is not None:
        carteira = CarteiraCaixa(empresa_id)
        return {empresa_id: carteira.importar(tipo, linhas, nome_arquivo, backend)}

    grupos, sem_empresa = separar_por_empresa(linhas, tipo)
    if not grupos:
        if sem_empresa:
            current_app.logger.warning(
                'Planilha %s sem empresa informada; %s linha(s) ignorada(s)',
                nome_arquivo, len(sem_empresa),
            )
        return {}

    resultados = {}
    for nome, (grupo, numeros) in grupos.items():
        empresa = services.garantir_empresa(nome)
        carteira = CarteiraCaixa(empresa.id)
        resultados[empresa.id] = carteira.importar(
            tipo, grupo, nome_arquivo, backend, numeros, descartes=sem_empresa,
        )
        sem_empresa = []
    return resultados
