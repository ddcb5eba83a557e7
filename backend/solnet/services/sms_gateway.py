# Overview: Outbound SMS through Twilio; configuration lookup, phone formatting and send.

"""
SMS Gateway

Credentials come from app settings (category "sms") and fall back to the
TWILIO_* values in the Flask config. The gateway is enabled only when the
"enabled" switch is on and all three credentials are present; a disabled
gateway accepts every message as a no-op success.

send_sms() never raises: provider errors come back in SendResult.error so
queue and campaign code can record them per row.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from flask import current_app
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from . import settings_service

logger = logging.getLogger(__name__)


SMS_CATEGORY = "sms"


@dataclass(frozen=True)
class GatewayConfig:
    account_sid: str | None
    auth_token: str | None
    from_number: str | None
    enabled: bool

    @property
    def is_active(self) -> bool:
        return bool(self.enabled and self.account_sid and self.auth_token and self.from_number)


@dataclass(frozen=True)
class SendResult:
    success: bool
    sid: str | None = None
    error: str | None = None


def load_config() -> GatewayConfig:
    stored = settings_service.get_category(SMS_CATEGORY)
    config = current_app.config

    account_sid = stored.get("account_sid") or config.get("TWILIO_ACCOUNT_SID")
    auth_token = stored.get("auth_token") or config.get("TWILIO_AUTH_TOKEN")
    from_number = stored.get("from_number") or config.get("TWILIO_FROM_NUMBER")

    # Env-only deployments are enabled unless explicitly switched off
    enabled = stored.get("enabled")
    if enabled is None:
        enabled = bool(account_sid and auth_token and from_number)

    return GatewayConfig(
        account_sid=account_sid,
        auth_token=auth_token,
        from_number=from_number,
        enabled=bool(enabled),
    )


def format_phone_number(phone: str) -> str:
    """
    Normalize to E.164.

    - "+..." is kept as typed
    - 10 digits: US number, +1 prefix
    - 11 digits starting with 1: US with country code
    - 12 digits starting with 251: Ethiopian with country code
    - 9 digits starting with 9: Ethiopian mobile, +251 prefix
    - anything else: +1 prefix
    """
    phone = (phone or "").strip()
    if phone.startswith("+"):
        return phone

    digits = re.sub(r"\D", "", phone)

    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) == 12 and digits.startswith("251"):
        return f"+{digits}"
    if len(digits) == 9 and digits.startswith("9"):
        return f"+251{digits}"
    return f"+1{digits}"


def send_sms(phone: str, message: str) -> SendResult:
    """Send one message. Disabled gateway: success without a provider id."""
    config = load_config()
    if not config.is_active:
        logger.info("SMS gateway disabled; skipping message to %s", phone)
        return SendResult(success=True)

    to = format_phone_number(phone)
    try:
        client = Client(config.account_sid, config.auth_token)
        sent = client.messages.create(
            body=message,
            from_=config.from_number,
            to=to,
        )
    except TwilioException as e:
        logger.error("Failed to send SMS to %s: %s", to, e)
        return SendResult(success=False, error=str(e))
    except Exception as e:
        # Transport errors (connection, timeout) surface from the HTTP client
        logger.exception("Failed to send SMS to %s", to)
        return SendResult(success=False, error=str(e) or type(e).__name__)

    logger.info("SMS sent to %s with SID: %s", to, sent.sid)
    return SendResult(success=True, sid=sent.sid)


def masked_settings() -> dict:
    """Stored SMS settings for display; the auth token is never returned."""
    stored = settings_service.get_category(SMS_CATEGORY)
    token = stored.get("auth_token")
    stored["auth_token"] = f"****{token[-4:]}" if token else None
    stored["is_configured"] = load_config().is_active
    return stored
