"""UPI payment presentation.

Builds the ``upi://pay`` deep link rendered as a QR code for the payer.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import quote, urlencode

from parkops.config.settings import Settings

PAISE_PER_RUPEE = Decimal(100)


def paise_to_rupees(amount_paise: int) -> str:
    """Format a minor-unit amount as major units with 2 decimals."""
    rupees = Decimal(amount_paise) / PAISE_PER_RUPEE
    return str(rupees.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class UpiPaymentConfig:
    """Merchant details embedded in UPI payment links."""

    merchant_vpa: str
    payee_name: str = "ParkOps"
    currency_code: str = "INR"

    @classmethod
    def from_settings(cls, settings: Settings) -> "UpiPaymentConfig":
        return cls(
            merchant_vpa=settings.upi_merchant_vpa,
            payee_name=settings.upi_payee_name,
            currency_code=settings.currency_code,
        )

    def build_qr_payload(self, amount_paise: int, reservation_id: int) -> str:
        """
        Build the payment link for a reservation.

        Example:
            >>> UpiPaymentConfig("lot@okbank").build_qr_payload(2000, 42)
            'upi://pay?pa=lot@okbank&pn=ParkOps&am=20.00&cu=INR&tn=Reservation%20%2342'
        """
        params = {
            "pa": self.merchant_vpa,
            "pn": self.payee_name,
            "am": paise_to_rupees(amount_paise),
            "cu": self.currency_code,
            "tn": f"Reservation #{reservation_id}",
        }
        return "upi://pay?" + urlencode(params, quote_via=quote, safe="@")
