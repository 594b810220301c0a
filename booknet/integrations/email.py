# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=us-east-1
#
# Without credentials the service logs what it would have sent and
# reports the send as not delivered.
#
# Sends are fire-and-forget relative to the HTTP response: use dispatch()
# to schedule them. Failures are logged, never raised to the caller.
#
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from booknet.config import Settings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

TEMPLATES = {
    "activate_account": {
        "subject": "Account activation",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Hello {name},</h1>
            <p>Your account has been created. Use the code below to activate it:</p>
            <p style="text-align: center; font-size: 28px; letter-spacing: 6px; margin: 30px 0;"><strong>{activation_code}</strong></p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{confirmation_url}" style="background: #4A90A4; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px; display: inline-block;">
                    Activate account
                </a>
            </p>
            <p style="color: #666; font-size: 14px;">This code expires in {expires_minutes} minutes.</p>
        </body>
        </html>
        """,
        "text": """
Hello {name},

Your account has been created. Activate it with this code: {activation_code}

{confirmation_url}

This code expires in {expires_minutes} minutes.
        """,
    },
}


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Send emails via AWS SES."""
    
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._client = None
    
    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None and self.settings.use_aws:
            self._client = boto3.client(
                'ses',
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client
    
    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return self.settings.use_aws and bool(self.settings.aws_ses_from_email)
    
    async def send(
        self,
        to: str,
        template: str,
        data: dict[str, Any] | None = None,
        subject_override: str | None = None,
    ) -> bool:
        """
        Send an email using a template.
        
        Args:
            to: Recipient email address
            template: Template name (e.g., "activate_account")
            data: Template variables to substitute
            subject_override: Override the template's subject
        
        Returns:
            True if sent successfully, False otherwise
        """
        if template not in TEMPLATES:
            logger.error(f"Unknown email template: {template}")
            return False
        
        if not self.is_configured:
            logger.warning(f"Email not configured - would send '{template}' to {to}")
            return False
        
        tpl = TEMPLATES[template]
        data = data or {}
        
        try:
            subject = subject_override or tpl["subject"]
            html_body = tpl["html"].format(**data)
            text_body = tpl["text"].format(**data)
            
            response = await asyncio.to_thread(
                self.client.send_email,
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )
            
            logger.info(f"Email sent to {to}: {template} (MessageId: {response['MessageId']})")
            return True
            
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False
        except KeyError as e:
            logger.error(f"Missing template variable for '{template}': {e}")
            return False
    
    async def send_activation(self, email: str, name: str, activation_code: str) -> bool:
        """Send the account activation code."""
        return await self.send(
            to=email,
            template="activate_account",
            data={
                "name": name or email,
                "activation_code": activation_code,
                "confirmation_url": self.settings.activation_url,
                "expires_minutes": self.settings.activation_token_expire_minutes,
            },
        )


# =============================================================================
# Fire-and-forget dispatch
# =============================================================================

# Strong references so pending sends are not garbage-collected mid-flight
_pending: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        logger.warning(f"Background send cancelled: {task.get_name()}")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background send failed: {task.get_name()}", exc_info=exc)


def dispatch(coro: Coroutine[Any, Any, Any], name: str = "email") -> asyncio.Task:
    """Schedule `coro` without awaiting it; errors are logged only."""
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _pending.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain() -> None:
    """Wait for every in-flight send (shutdown and tests)."""
    loop = asyncio.get_running_loop()
    tasks = [t for t in _pending if t.get_loop() is loop]
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
