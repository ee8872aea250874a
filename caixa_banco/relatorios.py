from datetime import datetime

from fpdf import FPDF
from fpdf.enums import XPos, YPos


def format_currency(value):
    try:
        return f"R$ {float(value):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    except (TypeError, ValueError):
        return "R$ 0,00"


class PDF(FPDF):
    gerado_em = ""
    empresa = ""
    periodo = ""
    saldo_inicial_txt = ""

    def header(self):
        self.set_font("Helvetica", "B", 12)
        page_width = self.w - self.l_margin - self.r_margin
        self.cell(page_width / 3, 10, "")
        self.cell(page_width / 3, 10, "Fluxo de Caixa", align="C")
        self.set_font("Helvetica", "", 10)
        self.cell(page_width / 3, 10, self.gerado_em, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if self.empresa:
            self.cell(0, 10, self.empresa, align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if self.periodo:
            self.cell(0, 10, self.periodo, align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if self.saldo_inicial_txt:
            self.cell(0, 10, self.saldo_inicial_txt, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(3)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "", 10)
        self.cell(0, 10, f"Página {self.page_no()}/{{nb}}", align="C")


COLUNAS = [
    ("Data", 24),
    ("Abertura", 28),
    ("Receber", 26),
    ("Pagar", 26),
    ("Importações", 26),
    ("Movimento", 28),
    ("Acumulado", 30),
]


def gerar_pdf_fluxo(dias, empresa_nome=""):
    """PDF com uma linha por dia do fluxo; dias com alerta saem destacados."""
    pdf = PDF()
    pdf.alias_nb_pages()
    pdf.gerado_em = datetime.now().strftime("%d/%m/%Y %H:%M")
    pdf.empresa = empresa_nome or ""
    if dias:
        pdf.periodo = "Período: {} a {}".format(
            dias[0].data.strftime("%d/%m/%Y"), dias[-1].data.strftime("%d/%m/%Y")
        )
        pdf.saldo_inicial_txt = f"Saldo inicial do período: {format_currency(dias[0].opening_balance)}"
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 10)
    pdf.set_fill_color(200, 200, 200)
    for text, width in COLUNAS:
        pdf.cell(width, 8, text, border=1, align="C", fill=True)
    pdf.ln(8)

    pdf.set_font("Helvetica", "", 9)
    for dia in dias:
        if dia.has_alert:
            pdf.set_text_color(180, 0, 0)
        data_txt = dia.data.strftime("%d/%m/%Y") + ("*" if dia.is_projected else "")
        pdf.cell(24, 7, data_txt, border=1)
        pdf.cell(28, 7, format_currency(dia.opening_balance), border=1, align="R")
        pdf.cell(26, 7, format_currency(dia.total_receivables), border=1, align="R")
        pdf.cell(26, 7, format_currency(dia.total_payables), border=1, align="R")
        pdf.cell(26, 7, format_currency(dia.imports), border=1, align="R")
        pdf.cell(28, 7, format_currency(dia.daily_balance), border=1, align="R")
        pdf.cell(30, 7, format_currency(dia.accumulated_balance), border=1, align="R",
                 new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(0, 0, 0)

    total_receber = sum(d.total_receivables for d in dias)
    total_pagar = sum(d.total_payables for d in dias)
    total_importar = sum(d.imports for d in dias)
    total_movimento = sum(d.daily_balance for d in dias)
    pdf.set_font("Helvetica", "B", 9)
    pdf.cell(52, 8, "Total", border=1)
    pdf.cell(26, 8, format_currency(total_receber), border=1, align="R")
    pdf.cell(26, 8, format_currency(total_pagar), border=1, align="R")
    pdf.cell(26, 8, format_currency(total_importar), border=1, align="R")
    pdf.cell(28, 8, format_currency(total_movimento), border=1, align="R")
    saldo_final = dias[-1].accumulated_balance if dias else 0
    pdf.cell(30, 8, format_currency(saldo_final), border=1, align="R",
             new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.ln(2)
    pdf.set_font("Helvetica", "", 8)
    pdf.cell(0, 6, "* dia projetado", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    return bytes(pdf.output())
