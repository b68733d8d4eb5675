"""Export template ordinate tables to a formatted Excel workbook."""

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

from notch.contour import ordinate_table


# Style constants
HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496",
                          fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center",
                         wrap_text=True)
THIN_BORDER = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin"),
)
TITLE_FONT = Font(bold=True, size=14, color="2F5496")
NOTE_FONT = Font(italic=True, color="9C0006")

PARAMETER_LABELS = [
    ("Main pipe diameter D1 (mm)", 'd1'),
    ("Branch pipe diameter D2 (mm)", 'd2'),
    ("Branch wall thickness (mm)", 'thickness'),
    ("Intersection angle (deg)", 'angle'),
    ("Center offset (mm)", 'offset'),
    ("Welding gap (mm)", 'welding_gap'),
    ("Seam rotation (deg)", 'start_angle'),
    ("Padding D1 (mm)", 'padding_d1'),
    ("Padding D2 (mm)", 'padding_d2'),
    ("Intersection by OD", 'calc_by_id'),
]


def _write_header(ws, row, headers):
    """Write a styled header row."""
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN
        cell.border = THIN_BORDER


def _auto_width(ws):
    """Auto-adjust column widths."""
    for col_cells in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col_cells[0].column)
        for cell in col_cells:
            if cell.value is not None:
                max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_len + 3, 40)


def _write_parameter_sheet(wb, params, project_info):
    """Create the Parameters sheet."""
    ws = wb.active
    ws.title = "Parameters"

    ws.cell(row=1, column=1, value="PIPE NOTCH TEMPLATE").font = TITLE_FONT

    row = 3
    for label, key in [("Project", 'project'), ("Author", 'author'), ("Date", 'date')]:
        ws.cell(row=row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=row, column=2, value=project_info.get(key, ''))
        row += 1

    row += 1
    _write_header(ws, row, ["Parameter", "Value"])
    row += 1
    values = params.to_dict()
    for label, key in PARAMETER_LABELS:
        value = values[key]
        if isinstance(value, bool):
            value = "Yes" if value else "No"
        ws.cell(row=row, column=1, value=label).border = THIN_BORDER
        ws.cell(row=row, column=2, value=value).border = THIN_BORDER
        row += 1

    _auto_width(ws)


def _write_ordinate_sheet(wb, title, headers, rows):
    """One sheet of (degree, x, y) ordinates."""
    ws = wb.create_sheet(title)
    _write_header(ws, 1, headers)

    if not rows:
        ws.cell(row=2, column=1,
                value="No geometry: the pipes do not intersect.").font = NOTE_FONT
        _auto_width(ws)
        return

    for row_idx, (deg, x, y) in enumerate(rows, 2):
        for col_idx, val in enumerate((deg, round(x, 2), round(y, 2)), 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=val)
            cell.border = THIN_BORDER
            cell.number_format = "0.00" if col_idx > 1 else "0.#"

    _auto_width(ws)


def export_ordinates(params, output_path, step_deg=10, project_info=None):
    """
    Export the pipe and hole templates as ordinate tables.

    Each row gives the station (degrees), the arc length along the sheet
    and the height above the sheet bottom, so a template can be marked
    directly on the pipe with a tape measure.
    """
    if project_info is None:
        project_info = {}

    wb = openpyxl.Workbook()

    _write_parameter_sheet(wb, params, project_info)
    _write_ordinate_sheet(
        wb, "Pipe Template",
        ["Station (deg)", "Arc length (mm)", "Cut height (mm)"],
        ordinate_table(params, "pipe", step_deg),
    )
    _write_ordinate_sheet(
        wb, "Hole Template",
        ["Branch angle (deg)", "Arc length (mm)", "Height (mm)"],
        ordinate_table(params, "hole", step_deg),
    )

    wb.save(output_path)
