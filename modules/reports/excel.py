from io import BytesIO
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter


def _create_styles():
    """Create reusable style definitions."""
    thin_border = Side(style="thin", color="000000")
    return {
        "title_font": Font(bold=True, size=14),
        "section_font": Font(bold=True, size=11),
        "header_font": Font(bold=True, size=10),
        "header_fill": PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid"),
        "total_fill": PatternFill(start_color="E2EFDA", end_color="E2EFDA", fill_type="solid"),
        "subtotal_font": Font(bold=True),
        "border": Border(left=thin_border, right=thin_border, top=thin_border, bottom=thin_border),
        "center_align": Alignment(horizontal="center", vertical="center"),
        "right_align": Alignment(horizontal="right", vertical="center"),
        "left_align": Alignment(horizontal="left", vertical="center"),
    }


def _apply_header_row(ws, row: int, columns: List[str], styles: dict):
    for col_idx, col_name in enumerate(columns, start=1):
        cell = ws.cell(row=row, column=col_idx, value=col_name)
        cell.font = styles["header_font"]
        cell.fill = styles["header_fill"]
        cell.border = styles["border"]
        cell.alignment = styles["center_align"]


def _apply_data_row(ws, row: int, values: List[Any], styles: dict, alignments: List[str] = None):
    for col_idx, value in enumerate(values, start=1):
        cell = ws.cell(row=row, column=col_idx, value=value)
        cell.border = styles["border"]
        if alignments and col_idx <= len(alignments):
            cell.alignment = styles.get(f"{alignments[col_idx - 1]}_align", styles["left_align"])


def _bold_row(ws, row: int, columns: int, styles: dict):
    for col in range(1, columns + 1):
        ws.cell(row=row, column=col).font = styles["subtotal_font"]


def _set_column_widths(ws, widths: List[int]):
    for col_idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width


def _format_currency(value) -> str:
    """Format a money value as ``R$ 1.234,56``."""
    if value is None:
        return "-"
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def _format_percentage(value) -> str:
    if value is None:
        return "-"
    return f"{value:.2f}%".replace(".", ",")


def build_quote_excel(quote_data: Dict[str, Any]) -> BytesIO:
    """Render a quote (as returned by ``compute_quote``) into an xlsx workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Orçamento"
    styles = _create_styles()

    header = quote_data.get("header", {})
    lines = quote_data.get("lines", [])
    extra_items = quote_data.get("extra_items", [])
    summary = quote_data.get("summary", {})

    current_row = 1

    # === Header ===
    ws.cell(row=current_row, column=1, value="ORÇAMENTO").font = styles["title_font"]
    ws.merge_cells(start_row=current_row, start_column=1, end_row=current_row, end_column=6)
    current_row += 2

    header_info = [
        ("Orçamento Nº:", header.get("quote_number") or "-"),
        ("Pedido:", f"#{header.get('order_id', '-')}"),
        ("Cliente:", header.get("client_name") or "-"),
        ("Status:", header.get("status", "-")),
        ("Emitido em:", header.get("generated_at", "-")[:10] if header.get("generated_at") else "-"),
        ("Válido até:", header.get("valid_until", "-")[:10] if header.get("valid_until") else "-"),
    ]
    for label, value in header_info:
        ws.cell(row=current_row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=current_row, column=2, value=value)
        current_row += 1
    current_row += 1

    # === Products ===
    ws.cell(row=current_row, column=1, value="PRODUTOS").font = styles["section_font"]
    current_row += 1
    _apply_header_row(ws, current_row, ["#", "Produto", "Qtd", "Custo Unit.", "Margem", "Preço Unit.", "Total"], styles)
    current_row += 1

    line_alignments = ["center", "left", "center", "right", "right", "right", "right"]
    for line in lines:
        row_values = [
            line.get("line_number", "-"),
            line.get("product_name", "-"),
            line.get("quantity", 0),
            _format_currency(line.get("base_cost", {}).get("total")),
            _format_percentage(line.get("margin_percent")),
            _format_currency(line.get("unit_price")),
            _format_currency(line.get("line_value")),
        ]
        _apply_data_row(ws, current_row, row_values, styles, line_alignments)
        current_row += 1

    _apply_data_row(
        ws,
        current_row,
        ["SUBTOTAL", "", "", "", "", "", _format_currency(summary.get("products_subtotal"))],
        styles,
        line_alignments,
    )
    _bold_row(ws, current_row, 7, styles)
    current_row += 2

    # === Extra items ===
    if extra_items:
        ws.cell(row=current_row, column=1, value="ITENS EXTRAS").font = styles["section_font"]
        current_row += 1
        _apply_header_row(ws, current_row, ["Item", "Descrição", "Valor"], styles)
        current_row += 1
        for item in extra_items:
            _apply_data_row(
                ws,
                current_row,
                [item.get("name", "-"), item.get("description") or "", _format_currency(item.get("value"))],
                styles,
                ["left", "left", "right"],
            )
            current_row += 1
        _apply_data_row(
            ws,
            current_row,
            ["SUBTOTAL", "", _format_currency(summary.get("extras_subtotal"))],
            styles,
            ["left", "left", "right"],
        )
        _bold_row(ws, current_row, 3, styles)
        current_row += 2

    # === Taxes, applied in order on the running total ===
    taxes = summary.get("taxes", [])
    if taxes:
        ws.cell(row=current_row, column=1, value="IMPOSTOS").font = styles["section_font"]
        current_row += 1
        _apply_header_row(ws, current_row, ["Ordem", "Imposto", "Alíquota", "Base", "Valor", "Acumulado"], styles)
        current_row += 1
        tax_alignments = ["center", "left", "right", "right", "right", "right"]
        for position, tax in enumerate(taxes, start=1):
            row_values = [
                position,
                tax.get("tax_type", "-"),
                _format_percentage(tax.get("percent")),
                _format_currency(tax.get("base")),
                _format_currency(tax.get("tax_value")),
                _format_currency(tax.get("running_total")),
            ]
            _apply_data_row(ws, current_row, row_values, styles, tax_alignments)
            current_row += 1
        current_row += 1

    # === Totals ===
    ws.cell(row=current_row, column=1, value="TOTAIS").font = styles["section_font"]
    current_row += 1
    totals = [
        ("Subtotal", summary.get("subtotal")),
        ("Total de impostos", summary.get("taxes_total")),
        ("Total com impostos", summary.get("taxed_total")),
        ("Frete", summary.get("freight")),
        ("TOTAL FINAL", summary.get("final_total")),
    ]
    for label, value in totals:
        _apply_data_row(ws, current_row, [label, _format_currency(value)], styles, ["left", "right"])
        current_row += 1
    for col in (1, 2):
        cell = ws.cell(row=current_row - 1, column=col)
        cell.font = styles["subtotal_font"]
        cell.fill = styles["total_fill"]

    _set_column_widths(ws, [22, 30, 14, 16, 16, 16, 16])

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream
