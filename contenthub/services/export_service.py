"""
CSV and Excel export for attendees and form responses
"""

import csv
import io
from typing import List, Sequence

import pandas as pd

from contenthub.schemas import Attendee, FormField, FormResponse
from contenthub.utils.timeutils import as_utc


class ExportService:
    """Builds spreadsheet exports with pandas"""

    ATTENDEE_COLUMNS = ['Name', 'Email', 'Ticket Type', 'Quantity', 'Registered At', 'Checked In']
    SUBMISSION_DATE_COLUMN = 'Submission Date'
    XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    @staticmethod
    def attendees_frame(attendees: List[Attendee]) -> pd.DataFrame:
        """One row per attendee in the order given"""
        data = []
        for attendee in attendees:
            data.append({
                'Name': attendee.name,
                'Email': attendee.email,
                'Ticket Type': attendee.ticket_type_name,
                'Quantity': attendee.quantity,
                'Registered At': as_utc(attendee.registered_at).isoformat(),
                'Checked In': 'true' if attendee.checked_in else 'false',
            })
        return pd.DataFrame(data, columns=ExportService.ATTENDEE_COLUMNS)

    @staticmethod
    def responses_frame(responses: List[FormResponse], fields: Sequence[FormField]) -> pd.DataFrame:
        """One row per response; columns follow the form's field order"""
        labels = [field.label for field in fields]
        data = []
        for response in responses:
            row = {
                ExportService.SUBMISSION_DATE_COLUMN: as_utc(response.submitted_at).strftime('%Y-%m-%d %H:%M:%S')
            }
            for label in labels:
                value = response.data.get(label, '')
                if isinstance(value, list):
                    value = ', '.join(str(v) for v in value)
                row[label] = '' if value is None else value
            data.append(row)
        return pd.DataFrame(data, columns=[ExportService.SUBMISSION_DATE_COLUMN] + labels)

    @staticmethod
    def to_csv(df: pd.DataFrame) -> str:
        """Minimal quoting: only fields holding a comma, quote or newline"""
        return df.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')

    @staticmethod
    def to_xlsx(df: pd.DataFrame, sheet_name: str) -> bytes:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name)
        return buffer.getvalue()

    @staticmethod
    def export_attendees_csv(attendees: List[Attendee]) -> str:
        return ExportService.to_csv(ExportService.attendees_frame(attendees))

    @staticmethod
    def export_attendees_xlsx(attendees: List[Attendee]) -> bytes:
        return ExportService.to_xlsx(ExportService.attendees_frame(attendees), 'Attendees')

    @staticmethod
    def export_responses_csv(responses: List[FormResponse], fields: Sequence[FormField]) -> str:
        return ExportService.to_csv(ExportService.responses_frame(responses, fields))

    @staticmethod
    def export_responses_xlsx(responses: List[FormResponse], fields: Sequence[FormField]) -> bytes:
        return ExportService.to_xlsx(ExportService.responses_frame(responses, fields), 'Responses')
