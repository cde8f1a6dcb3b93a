"""QR code rendering for rotating session tokens."""
import base64
import io

import qrcode

class QRService:
    """Service for QR code operations."""
    
    @staticmethod
    def render_data_uri(data: str) -> str:
        """Render ``data`` as a PNG QR code and return it as a data URI."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)
        
        img = qr.make_image(fill_color="black", back_color="white")
        
        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()
        
        return f"data:image/png;base64,{img_str}"
