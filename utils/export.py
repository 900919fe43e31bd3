"""
utils/export.py — Excel export of the succession schedule using openpyxl.

Generates an .xlsx workbook with one sheet for sowing generations and one for
task occurrences, styled header rows and event-kind colouring.
Columns (Sowings): Crop, Variety, Generation, Sowing, Transplant, Harvest,
Harvest type, Status.
"""

from io import BytesIO

from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from models import SowingPlan, TaskPlan, HARVEST_ACTUAL, HARVEST_ESTIMATED
from succession_engine import expand_generations, expand_task_occurrences
from utils.dates import format_date


# Harvest type colours
HARVEST_FILLS = {
    HARVEST_ACTUAL: PatternFill(start_color='2E7D32', end_color='2E7D32', fill_type='solid'),
    HARVEST_ESTIMATED: PatternFill(start_color='F9A825', end_color='F9A825', fill_type='solid'),
}
FAILED_FILL = PatternFill(start_color='C62828', end_color='C62828', fill_type='solid')

HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='33691E', end_color='33691E', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
HEADER_BORDER = Border(
    bottom=Side(style='thin', color='1B5E20'),
    right=Side(style='thin', color='E2E8F0'),
)
CELL_BORDER = Border(
    bottom=Side(style='thin', color='E2E8F0'),
    right=Side(style='thin', color='E2E8F0'),
)

SOWING_COLUMNS = ['Crop', 'Variety', 'Generation', 'Sowing', 'Transplant', 'Harvest', 'Harvest type', 'Status']
TASK_COLUMNS = ['Task', 'Occurrence', 'Date', 'Description']


def _write_header(ws, columns):
    for col_idx, col_name in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = HEADER_BORDER
    ws.freeze_panes = 'A2'


def _build_sowing_sheet(ws, plans, get_variety, date_format):
    """Populate a worksheet with one row per generation. Returns row count."""
    _write_header(ws, SOWING_COLUMNS)

    row_idx = 2
    for plan in plans:
        variety = get_variety(plan.crop_id, plan.variety_id)
        generations = expand_generations(plan, variety)
        if not generations:
            continue

        for gen in generations:
            values = [
                plan.crop_id,
                variety.name,
                gen.index + 1,
                '' if not gen.show_sowing else format_date(gen.sowing_date, date_format),
                format_date(gen.transplant_date, date_format),
                format_date(gen.harvest_date, date_format),
                gen.harvest_date_kind,
                plan.status or 'active',
            ]
            for col_idx, value in enumerate(values, 1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = CELL_BORDER

            kind_cell = ws.cell(row=row_idx, column=7)
            if gen.harvest_date_kind in HARVEST_FILLS:
                kind_cell.fill = HARVEST_FILLS[gen.harvest_date_kind]
                kind_cell.font = Font(color='FFFFFF', bold=True)
            if plan.status == 'failed':
                status_cell = ws.cell(row=row_idx, column=8)
                status_cell.fill = FAILED_FILL
                status_cell.font = Font(color='FFFFFF', bold=True)
            row_idx += 1

    for letter, width in zip('ABCDEFGH', (14, 20, 12, 14, 14, 14, 14, 12)):
        ws.column_dimensions[letter].width = width
    return row_idx - 2


def _build_task_sheet(ws, plans, date_format):
    _write_header(ws, TASK_COLUMNS)

    row_idx = 2
    for plan in plans:
        for occ in expand_task_occurrences(plan) or []:
            values = [plan.task_name, occ.index + 1, format_date(occ.date, date_format), plan.task_description]
            for col_idx, value in enumerate(values, 1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = CELL_BORDER
            row_idx += 1

    for letter, width in zip('ABCD', (28, 12, 14, 40)):
        ws.column_dimensions[letter].width = width
    return row_idx - 2


def generate_schedule_excel(plans, get_variety, date_format='dd/MM/yyyy'):
    """Generate an Excel workbook of every generation and task occurrence.

    Returns:
        (BytesIO buffer, filename) on success, (None, None) if there is
        nothing to export.
    """
    import openpyxl

    sowing_plans = [p for p in plans if isinstance(p, SowingPlan)]
    task_plans = [p for p in plans if isinstance(p, TaskPlan)]

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = 'Sowings'
    sowing_rows = _build_sowing_sheet(ws, sowing_plans, get_variety, date_format)

    task_rows = 0
    if task_plans:
        task_rows = _build_task_sheet(wb.create_sheet(title='Tasks'), task_plans, date_format)

    if sowing_rows == 0 and task_rows == 0:
        return None, None

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    return buffer, "garden_schedule.xlsx"
