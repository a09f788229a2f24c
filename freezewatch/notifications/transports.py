"""Channel transports: one delivery attempt per call.

A transport takes an already rendered payload and a resolved
``ChannelTarget``, performs a single attempt and reports the outcome. It
never raises for delivery problems and never retries on its own; the
dispatcher applies the retry policy using ``retryable``/``retry_after``.

HTTP transports create a short-lived ``httpx.AsyncClient`` per call (no
pooling), SMTP runs the blocking ``smtplib`` client in a worker thread.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any

import httpx

from freezewatch.notifications.retry import (
    DEFAULT_RATE_LIMIT_WAIT,
    is_retryable_exception,
    is_retryable_status,
    parse_retry_after,
)
from freezewatch.notifications.schemas import ChannelTarget, DeliveryOutcome

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


class ChannelTransport(ABC):
    """Abstract base for a single-attempt delivery mechanism."""

    # Whether an attempt abandoned at the dispatcher timeout may be sent again.
    retry_on_timeout = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs (e.g. 'discord', 'smtp')."""

    @abstractmethod
    async def send(self, payload: dict[str, Any], target: ChannelTarget) -> DeliveryOutcome:
        """Attempt delivery once.

        Args:
            payload: Rendered channel payload.
            target: Resolved destination and options.

        Returns:
            Outcome of this single attempt.
        """


def _response_outcome(resp: httpx.Response, transport: str) -> DeliveryOutcome:
    """Map an HTTP response to an outcome."""
    if resp.is_success:
        return DeliveryOutcome.success(status_code=resp.status_code)

    body = resp.text[:200]
    retry_after = None
    if resp.status_code == 429:
        retry_after = parse_retry_after(
            resp.headers.get("retry-after"), default=DEFAULT_RATE_LIMIT_WAIT
        )
    logger.warning("%s returned HTTP %d: %s", transport, resp.status_code, body)
    return DeliveryOutcome.failure(
        detail=f"HTTP {resp.status_code}: {body}",
        retryable=is_retryable_status(resp.status_code),
        status_code=resp.status_code,
        retry_after=retry_after,
    )


class HttpTransport(ChannelTransport):
    """POSTs the payload as JSON to an HTTP endpoint."""

    def __init__(self, timeout: float = 20.0) -> None:
        self._timeout = timeout

    def _request(
        self,
        payload: dict[str, Any],
        target: ChannelTarget,
    ) -> tuple[str, dict[str, Any], dict[str, str], dict[str, str]]:
        """Return (url, json body, headers, query params) for the request."""
        return str(target.destination), payload, dict(target.options.get("headers", {})), {}

    async def send(self, payload: dict[str, Any], target: ChannelTarget) -> DeliveryOutcome:
        url, body, headers, params = self._request(payload, target)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=headers, params=params)
        except httpx.TimeoutException:
            logger.warning("%s timed out posting to %s", self.name, url)
            return DeliveryOutcome.failure(detail="timeout", retryable=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("%s failed posting to %s: %s", self.name, url, e)
            return DeliveryOutcome.failure(
                detail=f"{type(e).__name__}: {e}",
                retryable=is_retryable_exception(e),
            )
        return _response_outcome(resp, self.name)


class JsonWebhookTransport(HttpTransport):
    """Posts to an arbitrary endpoint with optional custom headers."""

    @property
    def name(self) -> str:
        return "webhook"


class DiscordWebhookTransport(HttpTransport):
    """Discord incoming webhook. Answers 204 on success."""

    @property
    def name(self) -> str:
        return "discord"

    def _request(self, payload, target):
        params = {}
        thread_id = target.options.get("thread_id")
        if thread_id:
            params["thread_id"] = str(thread_id)
        headers = {"Content-Type": "application/json; charset=utf-8"}
        return str(target.destination), payload, headers, params


class ResendTransport(HttpTransport):
    """Email over the Resend HTTPS API."""

    def __init__(self, api_key: str, timeout: float = 20.0) -> None:
        super().__init__(timeout=timeout)
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "resend"

    def _request(self, payload, target):
        body = {
            "from": target.options["from_addr"],
            "to": list(target.destination),
            "subject": payload["subject"],
            "text": payload["text"],
        }
        if payload.get("html"):
            body["html"] = payload["html"]
        headers = {"Authorization": f"Bearer {self._api_key}"}
        return RESEND_URL, body, headers, {}


class SendGridTransport(HttpTransport):
    """Email over the SendGrid v3 API. Answers 202 on success."""

    def __init__(self, api_key: str, timeout: float = 20.0) -> None:
        super().__init__(timeout=timeout)
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "sendgrid"

    def _request(self, payload, target):
        html = payload.get("html")
        body = {
            "personalizations": [{"to": [{"email": e} for e in target.destination]}],
            "from": {"email": target.options["from_addr"]},
            "subject": payload["subject"],
            "content": [
                {
                    "type": "text/html" if html else "text/plain",
                    "value": html or payload.get("text") or "",
                }
            ],
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        return SENDGRID_URL, body, headers, {}


class SmtpTransport(ChannelTransport):
    """Email over SMTP using the standard library client in a thread.

    A worker thread cannot be cancelled, so a send that outlives the
    dispatcher timeout may still reach the server. Such a timeout is not
    retried; the socket timeout bounds the thread itself.
    """

    retry_on_timeout = False

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        secure: bool = False,
        timeout: float = 20.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._secure = secure
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "smtp"

    def _build_message(self, payload: dict[str, Any], target: ChannelTarget) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = target.options["from_addr"]
        msg["To"] = ", ".join(target.destination)
        msg["Subject"] = payload["subject"]
        msg.set_content(payload.get("text") or "(no body)")
        if payload.get("html"):
            msg.add_alternative(payload["html"], subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage) -> dict:
        if self._secure:
            server = smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout)
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        with server:
            if not self._secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
            if self._username and self._password:
                server.login(self._username, self._password)
            return server.send_message(msg)

    async def send(self, payload: dict[str, Any], target: ChannelTarget) -> DeliveryOutcome:
        msg = self._build_message(payload, target)
        try:
            refused = await asyncio.to_thread(self._send_blocking, msg)
        except (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused) as e:
            logger.error("SMTP refused message: %s", e)
            return DeliveryOutcome.failure(detail=f"refused: {e}", retryable=False)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed: %s", e)
            return DeliveryOutcome.failure(detail="authentication failed", retryable=False)
        except smtplib.SMTPResponseException as e:
            # 4xx replies are temporary by definition
            return DeliveryOutcome.failure(
                detail=f"SMTP {e.smtp_code}: {e.smtp_error!r}",
                retryable=400 <= e.smtp_code < 500,
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP send error: %s", e)
            return DeliveryOutcome.failure(detail=f"{type(e).__name__}: {e}", retryable=True)

        if refused and len(refused) >= len(target.destination):
            return DeliveryOutcome.failure(detail="no recipients accepted", retryable=False)
        detail = f"refused: {sorted(refused)}" if refused else ""
        return DeliveryOutcome.success(detail=detail)
