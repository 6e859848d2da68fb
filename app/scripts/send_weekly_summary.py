"""
Send Weekly Summary Script
Calls the weekly summary endpoint of a running backend.
Meant to be run from a scheduler once a week.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config import settings
import httpx
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def send_weekly_summaries(base_url: str, cron_secret: str = None, http: httpx.Client = None) -> dict:
    """POST to the cron endpoint; raises on transport errors and non-2xx responses"""
    url = f"{base_url.rstrip('/')}/api/cron/weekly-summary"
    headers = {"Content-Type": "application/json"}
    if cron_secret:
        headers["X-Cron-Secret"] = cron_secret

    logger.info(f"Calling: {url}")
    client = http or httpx.Client(timeout=120.0)
    response = client.post(url, headers=headers)
    response.raise_for_status()
    return response.json()


def main():
    """Main function to trigger the weekly summary job"""
    logger.info("Starting weekly summary email job...")
    try:
        result = send_weekly_summaries(settings.app_base_url, settings.cron_secret)
    except httpx.HTTPStatusError as e:
        logger.error(f"Failed to send weekly summaries: {e.response.status_code} {e.response.text}")
        sys.exit(1)
    except httpx.HTTPError as e:
        logger.error(f"Error calling weekly summary endpoint: {e}")
        sys.exit(1)

    logger.info("Weekly summary emails sent successfully!")
    logger.info(f"Emails sent: {result.get('emails_sent', 0)}")
    logger.info(f"Families processed: {result.get('families_processed', 0)}")


if __name__ == "__main__":
    main()
