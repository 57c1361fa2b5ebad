"""
QR code generation for attendee check-in
"""

import io
import qrcode

from contenthub.core.config import settings

class QRService:
    """Service for generating check-in QR codes"""

    @staticmethod
    def get_check_in_url(event_id: str, attendee_id: str) -> str:
        """Dashboard link that checks the attendee in when opened"""
        return f"{settings.BASE_URL}/#events/{event_id}/check-in/{attendee_id}"

    @staticmethod
    def generate_check_in_qr(event_id: str, attendee_id: str, format: str = 'PNG') -> bytes:
        """Generate the attendee's check-in QR code as image bytes"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_check_in_url(event_id, attendee_id))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()
