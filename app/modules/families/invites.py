from html import escape
from typing import Tuple

from app.config import settings
from app.modules.families.schemas import FamilyResponse

JOIN_PATH = "/#/family-settings"


def join_url() -> str:
    return f"{settings.app_base_url.rstrip('/')}{JOIN_PATH}"


def render_invite_email(family: FamilyResponse, url: str) -> Tuple[str, str, str]:
    """Subject, HTML and plain text bodies of a family invitation"""
    subject = f"Join {family.name} on Kindora Family Calendar"
    name = escape(family.name)
    code = escape(family.invite_code)
    link = escape(url, quote=True)
    html = f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #4A5A6A;">Kindora Family Calendar</h1>
    <p><strong>{name}</strong> has invited you to join their family calendar.</p>
    <p style="font-size: 14px; color: #666;">Your invite code:</p>
    <div style="font-size: 32px; font-weight: bold; letter-spacing: 4px; font-family: monospace;">{code}</div>
    <ol>
      <li>Visit Kindora Family Calendar</li>
      <li>Sign in or create an account</li>
      <li>Go to Family Settings and enter the invite code <strong>{code}</strong></li>
    </ol>
    <p><a href="{link}">Join {name}'s calendar</a></p>
  </div>
</body>
</html>"""
    text = "\n".join([
        f"You've been invited to join {family.name} on Kindora Family Calendar!",
        "",
        f"Your Invite Code: {family.invite_code}",
        "",
        "How to Join:",
        f"1. Visit: {url}",
        "2. Sign in or create an account",
        "3. Go to Family Settings",
        f"4. Enter your invite code: {family.invite_code}",
    ])
    return subject, html, text
