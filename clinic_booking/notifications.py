"""Appointment confirmation messages sent to patients.

Messages are simulated (logged and returned) unless SMS_WEBHOOK_URL is set,
in which case they are also POSTed to that gateway.
"""

import logging
from dataclasses import dataclass

import requests

from clinic_booking import config
from clinic_booking.date_utils import format_display_date
from clinic_booking.scheduling.database.models import Doctor

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when the SMS gateway rejects or can't be reached."""
    pass


@dataclass
class Notification:
    recipient_name: str
    recipient_phone: str
    message: str
    delivered: bool = False


def build_confirmation_message(doctor: Doctor, time: str, date: str) -> str:
    return (
        f"Confirmed: Appt with {doctor.name} on {format_display_date(date)} at {time}. "
        f"Location: {doctor.room_no}, {doctor.address}. We look forward to seeing you."
    )


class SmsNotifier:
    """Sends booking confirmations."""

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        self.webhook_url = webhook_url if webhook_url is not None else config.SMS_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else config.SMS_TIMEOUT_SECONDS
        self.sent: list[Notification] = []

    def send_confirmation(
        self,
        doctor: Doctor,
        patient_name: str,
        patient_phone: str,
        time: str,
        date: str,
    ) -> Notification:
        """Send the appointment confirmation with full location details."""
        notification = Notification(
            recipient_name=patient_name,
            recipient_phone=patient_phone,
            message=build_confirmation_message(doctor, time, date),
        )
        if self.webhook_url:
            self._post(notification)
            notification.delivered = True
        logger.info("SMS to %s (%s): %s", patient_name, patient_phone, notification.message)
        self.sent.append(notification)
        return notification

    def _post(self, notification: Notification) -> None:
        payload = {"to": notification.recipient_phone, "message": notification.message}
        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise NotificationError("SMS gateway request timed out")
        except requests.exceptions.ConnectionError:
            raise NotificationError("Failed to connect to SMS gateway")

        if response.status_code in (401, 403):
            raise NotificationError("SMS gateway rejected credentials")
        elif response.status_code >= 400:
            raise NotificationError(f"SMS gateway error: {response.status_code}")
