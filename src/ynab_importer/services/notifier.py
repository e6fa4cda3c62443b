"""Outbound notifications.

Notifications are fire-and-forget: a failed push is logged and never fails
the import run.
"""

import logging
from typing import Protocol

import requests

logger = logging.getLogger(__name__)

PUSHBULLET_PUSHES_URL = "https://api.pushbullet.com/v2/pushes"


def build_notification_message(new_transactions: int, alerts: list[str]) -> str:
    """Compose the run summary sent to the user."""
    message = f"There are {new_transactions} new transactions."
    if alerts:
        message += "\n\n" + "\n".join(alerts)
    return message


class Notifier(Protocol):
    """Anything that can deliver a text message."""

    def send(self, message: str) -> bool: ...


class LogNotifier:
    """Writes notifications to the log (used when no push service is configured)."""

    def send(self, message: str) -> bool:
        logger.info("Notification:\n%s", message)
        return True


class PushbulletNotifier:
    """Sends notifications as Pushbullet note pushes."""

    DEFAULT_TIMEOUT = 10

    def __init__(
        self,
        token: str,
        title: str = "YNAB import",
        device_iden: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.title = title
        self.device_iden = device_iden
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Access-Token": token,
                "Content-Type": "application/json",
            }
        )

    def send(self, message: str) -> bool:
        """Push a note. Returns False (and logs) on any failure."""
        body = {"type": "note", "title": self.title, "body": message}
        if self.device_iden:
            body["device_iden"] = self.device_iden

        try:
            response = self.session.post(PUSHBULLET_PUSHES_URL, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("Failed to send Pushbullet notification: %s", e)
            return False

        if not response.ok:
            logger.error(
                "Pushbullet rejected notification (%d): %s", response.status_code, response.text
            )
            return False

        logger.debug("Pushbullet notification sent")
        return True
