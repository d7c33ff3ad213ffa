"""
notify/sender.py -- Outbound message delivery.

Notifier is the seam between the notification routes and whatever actually
delivers email or SMS. Delivery is fire-and-forget from the caller's point of
view: a message is handed over once and never retried. A failed hand-over
raises DeliveryError, which the route layer turns into HTTP 502.

Implementations:
  LogNotifier     -- writes a log line per message. Default when no webhook is
                     configured; message bodies are not logged because they
                     may contain one-time codes.
  WebhookNotifier -- POSTs {destination, subject, body} as JSON to a relay
                     service (mail/SMS gateway) with requests.
"""

import logging

import requests

logger = logging.getLogger("incidentadmin.notify")


class DeliveryError(Exception):
    """The message could not be handed to the delivery backend."""


class Notifier:
    def send(self, destination: str, subject: str, body: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    def __init__(self) -> None:
        self.sent_count = 0

    def send(self, destination: str, subject: str, body: str) -> None:
        self.sent_count += 1
        logger.info("Notification queued to %s: %s", destination, subject)


class WebhookNotifier(Notifier):
    """Deliver messages through an HTTP relay. Each instance owns a requests.Session."""

    def __init__(self, url: str, timeout: float = 10) -> None:
        self.url = url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.max_redirects = 3

    def send(self, destination: str, subject: str, body: str) -> None:
        try:
            resp = self._session.post(
                self.url,
                json={"destination": destination, "subject": subject, "body": body},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Webhook delivery to %s failed: %s", destination, exc)
            raise DeliveryError(str(exc)) from exc

    def close(self) -> None:
        self._session.close()
