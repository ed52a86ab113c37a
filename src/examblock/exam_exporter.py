"""
src/examblock/exam_exporter.py

Export finalised sessions to Excel: one sheet per session laid out like
the room (desk grid, front of room at the top), plus a Summary sheet
listing every allocated desk.
"""

import logging
import os
from typing import Dict, List

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows

from . import grammar
from . import utils
from .codec import Document
from .session import Session

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ['Venue', 'Session', 'Day', 'Start', 'Desk',
                   'Family Name', 'Given Name', 'LUI', 'Exam']

# Light fills cycled across the exams of a session.
EXAM_COLORS = ["DDEBF7", "E2EFDA", "FFF2CC", "FCE4D6", "EDE7F6", "D9E1F2"]

THIN = Side(style='thin')
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)


def sheet_name(session: Session) -> str:
    """Excel sheet titles are limited to 31 characters and may not contain ':'."""
    return f"{session.venue.venue_id}_S{session.session_number}".replace(":", "-")[:31]


class ExamExporter:
    """Exports desk allocations of a document to an .xlsx workbook."""

    def __init__(self, document: Document):
        self.document = document

    def summary_frame(self) -> pd.DataFrame:
        rows = []
        for session in self.document.sessions:
            for desk in session.filled_desks():
                rows.append({
                    'Venue': session.venue.venue_id,
                    'Session': session.session_number,
                    'Day': session.day.isoformat(),
                    'Start': grammar.format_time(session.start),
                    'Desk': desk.number,
                    'Family Name': desk.family_name,
                    'Given Name': desk.given_and_init,
                    'LUI': str(desk.lui) if desk.lui is not None else "",
                    'Exam': desk.exam.short_title if desk.exam else "",
                })
        df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
        return df.sort_values(['Day', 'Start', 'Venue', 'Desk']).reset_index(drop=True)

    def export(self, filename: str) -> str:
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)

        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        self._write_summary(wb.create_sheet(title="Summary"))
        for session in self.document.sessions:
            if not session.is_finalised():
                logger.info("Session %s has no allocated desks; not exported", session)
                continue
            self._format_session(wb.create_sheet(title=sheet_name(session)), session)
        wb.save(filename)
        return filename

    def _write_summary(self, ws) -> None:
        df = self.summary_frame()
        for r_idx, row in enumerate(dataframe_to_rows(df, index=False, header=True), 1):
            for c_idx, value in enumerate(row, 1):
                cell = ws.cell(row=r_idx, column=c_idx, value=value)
                cell.border = BORDER
                if r_idx == 1:
                    cell.fill = PatternFill(start_color="2C3E50", end_color="2C3E50", fill_type="solid")
                    cell.font = Font(color="FFFFFF", bold=True, size=12)
                    cell.alignment = Alignment(horizontal="center", vertical="center")
        widths = [10, 9, 12, 8, 7, 20, 20, 14, 50]
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

    def _exam_colors(self, session: Session) -> Dict[str, str]:
        return {exam.id: EXAM_COLORS[i % len(EXAM_COLORS)] for i, exam in enumerate(session.exams)}

    def _format_session(self, ws, session: Session) -> None:
        """Header lines, then the desk grid with three rows per desk row."""
        last_col = get_column_letter(max(session.columns, 1))
        ws.merge_cells(f'A1:{last_col}1')
        cell = ws['A1']
        cell.value = f"Date {session.day.strftime('%d/%m/%Y')} Start {grammar.format_time(session.start)}"
        cell.font = Font(size=12, bold=True)
        cell.alignment = Alignment(horizontal='left')

        ws.merge_cells(f'A2:{last_col}2')
        cell = ws['A2']
        cell.value = f"Venue {session.venue.venue_id} session {session.session_number} ({session.venue.desk_label})"
        cell.font = Font(size=12, bold=True)
        cell.alignment = Alignment(horizontal='left')

        current_row = 4
        ws.merge_cells(f'A{current_row}:{last_col}{current_row}')
        cell = ws.cell(current_row, 1)
        cell.value = "FRONT"
        cell.font = Font(size=11, bold=True)
        cell.alignment = Alignment(horizontal='center', vertical='center')
        cell.fill = PatternFill(start_color="D3D3D3", end_color="D3D3D3", fill_type="solid")
        current_row += 1

        colors = self._exam_colors(session)
        for row in session.desks:
            for desk in row:
                if desk.number > session.total_desks:
                    continue
                col = desk.column + 1
                lines: List[str] = [f"Desk {desk.number}", desk.family_name, desk.given_and_init]
                for offset, text in enumerate(lines):
                    cell = ws.cell(current_row + offset, col, text)
                    cell.alignment = Alignment(horizontal='center', vertical='center')
                    if offset == 0:
                        cell.font = Font(bold=True)
                    if desk.exam is not None:
                        color = colors.get(desk.exam.id, EXAM_COLORS[0])
                        cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            current_row += 4

        legend_row = current_row + 1
        for exam in session.exams:
            cell = ws.cell(legend_row, 1, f"{exam.short_title} ({session.exam_count(exam)} students)")
            color = colors[exam.id]
            cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            legend_row += 1

        for col in range(1, session.columns + 1):
            ws.column_dimensions[get_column_letter(col)].width = utils.DESK_CELL_WIDTH + 3
