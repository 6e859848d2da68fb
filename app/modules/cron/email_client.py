from typing import Optional
import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_FROM_ADDRESS = "Kindora Calendar <noreply@kindora.app>"


class ResendEmailClient:
    def __init__(self, api_key: Optional[str] = None, http: Optional[httpx.Client] = None):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.from_address = settings.email_from_address or DEFAULT_FROM_ADDRESS
        self.http = http or httpx.Client(timeout=15.0)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to_email: str, subject: str, html: str, text: str) -> bool:
        """Send one email; failures are logged and reported as False"""
        if not self.configured:
            logger.info(f"Email API key not configured, not sending to {to_email}")
            return False
        try:
            response = self.http.post(
                RESEND_API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.from_address,
                    "to": [to_email],
                    "subject": subject,
                    "html": html,
                    "text": text,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Email API error {e.response.status_code}: {e.response.text}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Email send error: {e}")
            return False
        return True


def get_email_client() -> ResendEmailClient:
    return ResendEmailClient()
