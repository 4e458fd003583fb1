# storefront/services/mail_client.py
import requests

from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import MAIL_SERVICE_URL, MAIL_FROM

logger = get_logger(__name__)


class MailClient:
    """HTTP client of the mail-delivery collaborator."""

    def __init__(self, base_url: str | None = None, timeout: int = 5, sender: str = MAIL_FROM):
        self.base_url = (base_url or MAIL_SERVICE_URL).rstrip("/")
        self.timeout = timeout
        self.sender = sender

    @http_retry()
    def send(self, to: str, subject: str, text: str) -> dict:
        url = f"{self.base_url}/messages"
        logger.info(f"MailClient POST {url} to={to} subject={subject!r}")

        resp = requests.post(
            url,
            json={"from": self.sender, "to": to, "subject": subject, "text": text},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json() if resp.content else {}
