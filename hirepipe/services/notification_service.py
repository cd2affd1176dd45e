"""
Candidate notification emails.

Outside production every send is logged and answered with a synthetic
message id; nothing leaves the process. In production the message is
posted as JSON to the configured send-email function.

Stage templates are Jinja2 and are rendered in a sandbox, because they are
edited by recruiters and stored in the database.
"""

import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx
from email_validator import EmailNotValidError, validate_email
from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

from hirepipe.core.config import Settings

logger = logging.getLogger(__name__)


_EMAIL_WRAPPER = '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{}</div>'

DEFAULT_STAGE_TEMPLATES: Dict[str, str] = {
    "Applied": _EMAIL_WRAPPER.format(
        '<h2 style="color: #2563eb;">Application Received</h2>'
        "<p>Dear {{ candidateName }},</p>"
        "<p>Thank you for your application. We have received your profile and will review it shortly.</p>"
        "<p>We will be in touch with next steps within 2-3 business days.</p>"
        "<p>Best regards,<br>The {{ companyName }} Team</p>"
    ),
    "Screening": _EMAIL_WRAPPER.format(
        '<h2 style="color: #2563eb;">Screening Stage</h2>'
        "<p>Dear {{ candidateName }},</p>"
        "<p>Congratulations! Your profile has passed our initial review. "
        "We would like to schedule a screening call with you.</p>"
        "<p>We will be in touch shortly to arrange a convenient time.</p>"
        "<p>Best regards,<br>The {{ companyName }} Team</p>"
    ),
    "Interview": _EMAIL_WRAPPER.format(
        '<h2 style="color: #2563eb;">Interview Stage</h2>'
        "<p>Dear {{ candidateName }},</p>"
        "<p>Great news! We would like to invite you for an interview. "
        "Please let us know your availability for the coming week.</p>"
        "<p>We look forward to speaking with you soon.</p>"
        "<p>Best regards,<br>The {{ companyName }} Team</p>"
    ),
    "Offer": _EMAIL_WRAPPER.format(
        '<h2 style="color: #16a34a;">Job Offer</h2>'
        "<p>Dear {{ candidateName }},</p>"
        "<p>Excellent! We are pleased to extend you an offer. "
        "Please review the details and let us know if you have any questions.</p>"
        "<p>We are excited about the possibility of having you join our team.</p>"
        "<p>Best regards,<br>The {{ companyName }} Team</p>"
    ),
    "Hired": _EMAIL_WRAPPER.format(
        '<h2 style="color: #16a34a;">Welcome to the Team!</h2>'
        "<p>Dear {{ candidateName }},</p>"
        "<p>Welcome to the team! We are excited to have you on board. "
        "HR will be in touch with onboarding details.</p>"
        "<p>Best regards,<br>The {{ companyName }} Team</p>"
    ),
    "Rejected": _EMAIL_WRAPPER.format(
        '<h2 style="color: #dc2626;">Application Update</h2>'
        "<p>Dear {{ candidateName }},</p>"
        "<p>Thank you for your time and interest in {{ companyName }}. While we will not be moving forward "
        "with your application at this time, we encourage you to apply for future opportunities.</p>"
        "<p>Best regards,<br>The {{ companyName }} Team</p>"
    ),
}


INTERVIEW_INVITE_TEMPLATE = _EMAIL_WRAPPER.format(
    '<h2 style="color: #2563eb;">Interview Invitation</h2>'
    "<p>Dear {{ candidateName }},</p>"
    "<p>We are pleased to invite you for an interview for the position you applied for.</p>"
    '<div style="background-color: #f8fafc; padding: 20px; border-radius: 8px; margin: 20px 0;">'
    '<h3 style="margin-top: 0; color: #374151;">Interview Details:</h3>'
    "<p><strong>Date:</strong> {{ interview.date }}</p>"
    "<p><strong>Time:</strong> {{ interview.time }}</p>"
    "<p><strong>Type:</strong> {{ interview.type }}</p>"
    "<p><strong>Duration:</strong> {{ interview.duration }} minutes</p>"
    "<p><strong>Interviewer(s):</strong> {{ interview.interviewers }}</p>"
    "{% if interview.location %}<p><strong>Location:</strong> {{ interview.location }}</p>{% endif %}"
    "</div>"
    "<p>Please confirm your attendance by replying to this email.</p>"
    "<p>If you have any questions or need to reschedule, please don't hesitate to contact us.</p>"
    "<p>Best regards,<br>The {{ companyName }} Team</p>"
)


@dataclass(frozen=True)
class InterviewDetails:
    date: str
    time: str
    type: str
    duration: str
    interviewers: str
    location: Optional[str] = None


@dataclass(frozen=True)
class EmailConfig:
    """Sender identity and delivery settings."""

    from_email: str
    from_name: str
    reply_to: Optional[str] = None
    company_name: str = "Our Company"
    function_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = 30.0
    production: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            from_email=settings.EMAIL_FROM_ADDRESS,
            from_name=settings.EMAIL_FROM_NAME,
            reply_to=settings.EMAIL_REPLY_TO,
            company_name=settings.EMAIL_COMPANY_NAME,
            function_url=settings.EMAIL_FUNCTION_URL,
            api_key=settings.AUTH_PROVIDER_ANON_KEY,
            timeout_seconds=settings.EMAIL_FUNCTION_TIMEOUT_SECONDS,
            production=settings.is_production,
        )


@dataclass(frozen=True)
class EmailSendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def is_valid_email(address: Optional[str]) -> bool:
    """Syntax-only address check (no DNS lookups)."""
    if not address or not address.strip():
        return False
    try:
        validate_email(address.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def dev_message_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"dev-{int(time.time() * 1000)}-{suffix}"


class NotificationDispatcher:
    """Sends candidate notification emails."""

    def __init__(self, config: EmailConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client
        self._templates = SandboxedEnvironment(autoescape=True)

    @property
    def sender(self) -> str:
        return f"{self.config.from_name} <{self.config.from_email}>"

    async def send(
        self,
        to: Union[str, Sequence[str]],
        subject: str,
        html_body: str,
        reply_to: Optional[str] = None,
        cc: Optional[List[str]] = None,
        bcc: Optional[List[str]] = None,
    ) -> EmailSendResult:
        """Send one HTML email. Never raises."""
        recipients = [to] if isinstance(to, str) else list(to)
        logger.info("Sending email to %s", ", ".join(recipients))

        if not recipients or not all(recipient and recipient.strip() for recipient in recipients):
            return EmailSendResult(success=False, error="No recipients specified")
        invalid = [recipient for recipient in recipients if not is_valid_email(recipient)]
        if invalid:
            return EmailSendResult(success=False, error=f"Invalid recipient address: {', '.join(invalid)}")
        if not subject or not subject.strip():
            return EmailSendResult(success=False, error="Email subject is required")
        if not html_body or not html_body.strip():
            return EmailSendResult(success=False, error="Email body is required")

        payload: Dict[str, Any] = {
            "to": recipients,
            "from": self.sender,
            "subject": subject,
            "html": html_body,
            "replyTo": reply_to or self.config.reply_to,
        }
        if cc:
            payload["cc"] = cc
        if bcc:
            payload["bcc"] = bcc

        if not self.config.production:
            message_id = dev_message_id()
            logger.info(
                "Development mode - email not sent: to=%s subject=%r body=%r id=%s",
                recipients,
                subject,
                html_body[:100],
                message_id,
            )
            return EmailSendResult(success=True, message_id=message_id)

        return await self._deliver(payload)

    async def _deliver(self, payload: Dict[str, Any]) -> EmailSendResult:
        if not self.config.function_url:
            logger.error("EMAIL_FUNCTION_URL is not configured; cannot send email")
            return EmailSendResult(success=False, error="Email delivery is not configured")

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            if self._client is not None:
                resp = await self._client.post(self.config.function_url, json=payload, headers=headers)
            else:
                timeout = httpx.Timeout(self.config.timeout_seconds)
                async with httpx.AsyncClient(timeout=timeout) as client:
                    resp = await client.post(self.config.function_url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Email function returned HTTP %s", exc.response.status_code)
            return EmailSendResult(success=False, error=f"Email function returned HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.error("Failed to reach email function: %s", exc)
            return EmailSendResult(success=False, error=str(exc) or "Failed to send email")

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        message_id = data.get("messageId") if isinstance(data, dict) else None
        logger.info("Email sent successfully: %s", message_id)
        return EmailSendResult(success=True, message_id=message_id)

    def render_stage_template(
        self,
        candidate_name: str,
        from_stage: str,
        to_stage: str,
        template: Optional[str] = None,
    ) -> str:
        """Render a stage template, or the built-in one for `to_stage`."""
        source = template or DEFAULT_STAGE_TEMPLATES.get(to_stage) or DEFAULT_STAGE_TEMPLATES["Applied"]
        return self._templates.from_string(source).render(
            candidateName=candidate_name,
            fromStage=from_stage,
            toStage=to_stage,
            companyName=self.config.company_name,
        )

    async def send_stage_transition_email(
        self,
        candidate_email: str,
        candidate_name: str,
        from_stage: str,
        to_stage: str,
        template: Optional[str] = None,
    ) -> EmailSendResult:
        subject = f"Update on Your Application - {to_stage} Stage"
        try:
            body = self.render_stage_template(candidate_name, from_stage, to_stage, template)
        except TemplateError as exc:
            logger.error("Failed to render %s stage template: %s", to_stage, exc)
            return EmailSendResult(success=False, error=f"Email template error: {exc}")
        return await self.send(candidate_email, subject, body)

    async def send_interview_invite(
        self,
        candidate_email: str,
        candidate_name: str,
        interview: InterviewDetails,
    ) -> EmailSendResult:
        """Invite a candidate to a scheduled interview."""
        subject = f"Interview Invitation - {interview.type} Interview"
        try:
            body = self._templates.from_string(INTERVIEW_INVITE_TEMPLATE).render(
                candidateName=candidate_name,
                interview=interview,
                companyName=self.config.company_name,
            )
        except TemplateError as exc:
            logger.error("Failed to render interview invite: %s", exc)
            return EmailSendResult(success=False, error=f"Email template error: {exc}")
        return await self.send(candidate_email, subject, body)

    def validate_configuration(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        if not is_valid_email(self.config.from_email):
            errors.append("Invalid from email address")
        if not self.config.from_name or not self.config.from_name.strip():
            errors.append("From name is required")
        if self.config.production and not self.config.function_url:
            errors.append("Email function URL is required in production")
        return not errors, errors
