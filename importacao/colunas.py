"""Mapeamento de cabeçalhos de planilha para os campos canônicos.

Cada tabela associa o nome canônico do campo a uma lista ordenada de
grafias conhecidas. A ordem importa quando a planilha traz a coluna canônica
e a coluna legada ao mesmo tempo: vence a que aparece primeiro na lista.
Aceitar uma nova grafia de cabeçalho é só acrescentar um item aqui.
"""

ALIAS_EMPRESA = ['company', 'Empresa', 'id_da_empresa', 'Razão Social Empresa']

ALIASES_RECEBIVEIS = {
    'company': ALIAS_EMPRESA,
    'invoice_number': ['invoice_number', 'NF', 'Nota Fiscal', 'Nº NF', 'numero_da_fatura'],
    'order_number': ['order_number', 'Nr do Pedido', 'Pedido', 'numero_do_pedido'],
    'customer': ['customer', 'Cliente', 'cliente', 'Nome do Cliente'],
    'customer_doc': ['customer_doc', 'CNPJ/CPF', 'CPF/CNPJ', 'CNPJ', 'documento'],
    'customer_code': ['customer_code', 'Código', 'Codigo', 'Cód. Cliente'],
    'issue_date': ['issue_date', 'Data de Emissão', 'Data de Emissao', 'Emissão', 'Emissao', 'data_de_emissao'],
    'due_date': ['due_date', 'Dt. Vencimento', 'Data de Vencimento', 'Vencimento', 'data_de_vencimento'],
    'payment_prediction': ['payment_prediction', 'Previsão de Pgto.', 'Previsao de Pgto.', 'previsao_de_pagamento'],
    'principal_value': ['principal_value', 'Vlr Principal', 'Valor Principal', 'Valor', 'valor_principal', 'valor'],
    'fine': ['fine', 'Multa', 'multa'],
    'interest': ['interest', 'Juros', 'juros'],
    'updated_value': ['updated_value', 'Vlr Atualizado', 'Valor Atualizado', 'valor_atualizado', 'total'],
    'title_status': ['title_status', 'Status do Título', 'Status do Titulo', 'Status', 'status_do_titulo'],
    'seller': ['seller', 'Vendedor', 'vendedor'],
    'uf': ['uf', 'UF', 'Estado'],
    'regional': ['regional', 'Regional'],
    'installment': ['installment', 'Parcela', 'parcela'],
    'days_overdue': ['days_overdue', 'Dias', 'Dias em Atraso'],
    'description': ['description', 'Observações', 'Observacoes', 'Descrição', 'Descricao'],
}

ALIASES_PAGAVEIS = {
    'company': ALIAS_EMPRESA,
    'entity_name': ['entity_name', 'Fornecedor', 'supplier', 'supplier_name', 'fornecedor'],
    'document_number': ['document_number', 'Documento', 'NF', 'Nota Fiscal', 'documento'],
    'issue_date': ['issue_date', 'Emissão', 'Emissao', 'Data de Emissão', 'emissao'],
    'due_date': ['due_date', 'Vencimento', 'Dt. Vencimento', 'vencimento'],
    'payment_prediction': ['payment_prediction', 'Previsão de Pgto.', 'Previsao de Pgto.'],
    'principal_value': ['principal_value', 'Valor', 'Vlr Principal', 'valor_principal', 'valor'],
    'fine': ['fine', 'Multa', 'multa'],
    'interest': ['interest', 'Juros', 'juros'],
    'amount': ['amount', 'Total', 'Valor Total', 'valor_total'],
    'status': ['status', 'Status', 'Situação', 'Situacao'],
    'category': ['category', 'Categoria', 'categoria'],
    'description': ['description', 'Descrição', 'Descricao', 'descricao'],
}

ALIASES = {
    'receivable': ALIASES_RECEBIVEIS,
    'payable': ALIASES_PAGAVEIS,
}


def _chave(nome):
    return str(nome).strip().lower()


def indexar_linha(linha):
    """Índice ``cabeçalho normalizado -> valor`` para a busca sem caixa."""
    indice = {}
    for chave, valor in linha.items():
        normalizada = _chave(chave)
        if indice.get(normalizada) is None:
            indice[normalizada] = valor
    return indice


def resolver_campo(linha, aliases, indice=None):
    """Primeiro valor definido entre os aliases, exato antes de sem caixa."""
    for alias in aliases:
        valor = linha.get(alias)
        if valor is not None:
            return valor

    if indice is None:
        indice = indexar_linha(linha)
    for alias in aliases:
        valor = indice.get(_chave(alias))
        if valor is not None:
            return valor
    return None


def resolver_linha(linha, tipo):
    """Resolve todos os campos canônicos do esquema para uma linha crua."""
    tabela = ALIASES[tipo]
    indice = indexar_linha(linha)
    return {campo: resolver_campo(linha, aliases, indice) for campo, aliases in tabela.items()}
