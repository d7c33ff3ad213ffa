"""
notify/service.py -- Composes CodeStore and a Notifier into the notification flows.

Every send_* method hands exactly one message to the notifier. DeliveryError
propagates to the caller; verify_* methods return a bool.
"""

import logging

from notify.codes import OTP, RESET_PASSWORD, CodeStore
from notify.sender import Notifier

logger = logging.getLogger("incidentadmin.notify")


class NotificationService:
    def __init__(self, notifier: Notifier, codes: CodeStore, support_email: str) -> None:
        self.notifier = notifier
        self.codes = codes
        self.support_email = support_email

    def _minutes(self) -> int:
        return max(1, self.codes.expire_seconds // 60)

    # ------------------------------------------------------------------
    # One-time codes
    # ------------------------------------------------------------------

    def send_otp(self, destination: str) -> None:
        code = self.codes.issue(destination, OTP)
        self.notifier.send(
            destination,
            "Your verification code",
            f"Your verification code is {code}. It expires in {self._minutes()} minutes.",
        )

    def verify_otp(self, destination: str, code: str) -> bool:
        return self.codes.verify(destination, OTP, code)

    def send_reset_password_code(self, destination: str) -> None:
        code = self.codes.issue(destination, RESET_PASSWORD)
        self.notifier.send(
            destination,
            "Password reset code",
            f"Use {code} to reset your password. It expires in {self._minutes()} minutes. "
            "If you did not ask for a reset, ignore this message.",
        )

    def verify_reset_password_code(self, destination: str, code: str) -> bool:
        return self.codes.verify(destination, RESET_PASSWORD, code)

    # ------------------------------------------------------------------
    # Plain messages
    # ------------------------------------------------------------------

    def send_purchase_confirmation(self, destination: str, order_id: str, item: str, amount: float) -> None:
        self.notifier.send(
            destination,
            f"Purchase confirmation #{order_id}",
            f"Thank you for your purchase of {item}. Amount charged: {amount:.2f}. Order reference: {order_id}.",
        )

    def send_deletion_request(self, email: str, reason: str = "") -> None:
        """Forward a user's data-deletion request to the support mailbox."""
        body = f"User {email} has requested deletion of their account data."
        if reason:
            body += f"\n\nReason given: {reason}"
        self.notifier.send(self.support_email, "Data deletion request", body)
        logger.info("Data deletion request forwarded to support")
