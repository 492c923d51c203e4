"""ZeptoMail implementation of EmailProvider.

Sends the verification code over the ZeptoMail HTTP API with httpx and
renders the HTML body from a Jinja2 template. The code goes into the message
body only; log lines carry the masked address and the outcome.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger, mask_email

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        app_name: str = "Dev Diaries",
        app_url: str = "https://devdiaries.app",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.email_timeout_seconds
        )
        self._app_name = app_name
        self._app_url = app_url
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def _send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=mask_email(to_email),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=mask_email(to_email))
            return True
        log.error(
            "email_sent_failed",
            to_email=mask_email(to_email),
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_verification_email(
        self, email: str, otp_code: str, expires_in_minutes: int
    ) -> bool:
        subject = f"{self._app_name} - Email Verification Code"
        template = self._jinja.get_template("verification.html")
        html_body = template.render(
            otp_code=otp_code,
            app_name=self._app_name,
            app_url=self._app_url,
            expires_in_minutes=expires_in_minutes,
        )
        text_body = (
            f"{self._app_name} - Email Verification\n\n"
            f"Your verification code is: {otp_code}\n\n"
            f"This code expires in {expires_in_minutes} minutes. "
            f"If you didn't request it, you can ignore this email."
        )
        return await self._send(email, subject, html_body, text_body)

    async def aclose(self) -> None:
        await self._http.aclose()
