# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort email notifier using async SMTP.

send() never raises. A missing configuration or an SMTP failure is logged
and swallowed so the business operation that triggered the email is never
failed or rolled back because of it.

Configuration (via environment variables, see EmailSettings):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME / SMTP_PASSWORD: SMTP credentials (optional)
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_SENDER_EMAIL / SMTP_SENDER_NAME: From header
"""

from __future__ import annotations

import html
import logging
import re
from decimal import Decimal
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from src.core.config.settings import EmailSettings

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")

_BASE_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background-color: %(color)s; color: white; padding: 20px; text-align: center; }
        .content { background-color: #f9f9f9; padding: 20px; margin: 20px 0; }
        .highlight { font-size: 36px; font-weight: bold; color: %(color)s; text-align: center; margin: 20px 0; }
        .info-box { background-color: white; padding: 15px; margin: 15px 0; border-left: 4px solid %(color)s; }
        .footer { text-align: center; color: #666; font-size: 12px; margin-top: 20px; }
"""


class EmailNotifier:
    """Fire-and-forget notification emails.

    Attributes:
        _settings: SMTP configuration.
    """

    def __init__(self, settings: EmailSettings) -> None:
        self._settings = settings

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        """Send an HTML email, logging instead of raising on failure.

        Args:
            to_address: Recipient address.
            subject: Subject line.
            html_body: HTML body; a plain text alternative is derived.
        """
        if not self._settings.is_configured:
            logger.warning("Email notifications disabled, skipping '%s' to %s", subject, to_address)
            return

        if not to_address:
            logger.warning("No recipient address for '%s'", subject)
            return

        message = self._build_message(to_address, subject, html_body)
        password = self._settings.password.get_secret_value() if self._settings.password else None

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=password,
                start_tls=self._settings.use_tls,
                timeout=self._settings.timeout_seconds,
            )
        except Exception as e:
            logger.error("Failed to send email to %s: %s", to_address, str(e), exc_info=True)
            return

        logger.info("Email sent to %s: %s", to_address, subject)

    async def send_class_enrollment(
        self,
        to_address: str,
        student_name: str,
        class_name: str,
        course_name: str,
        teacher_name: str,
    ) -> None:
        """Tell a student they were enrolled in a class."""
        subject = f"Enrolled in {class_name}"
        body = render_class_enrollment(student_name, class_name, course_name, teacher_name)
        await self.send(to_address, subject, body)

    async def send_assignment_graded(
        self,
        to_address: str,
        student_name: str,
        assignment_title: str,
        grade: Decimal | float,
    ) -> None:
        """Tell a student one of their submissions was graded."""
        subject = f"Assignment Graded: {assignment_title}"
        body = render_assignment_graded(student_name, assignment_title, grade)
        await self.send(to_address, subject, body)

    def _build_message(self, to_address: str, subject: str, html_body: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = f"{self._settings.sender_name} <{self._settings.sender_email}>"
        message["To"] = to_address
        message["Subject"] = subject

        message.attach(MIMEText(html_to_text(html_body), "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))
        return message


def html_to_text(html_body: str) -> str:
    """Crude plain text rendering of an HTML body for the text/plain part."""
    without_head = re.sub(r"(?s)<head>.*?</head>", "", html_body)
    text = html.unescape(_TAG_RE.sub("", without_head))
    return _BLANK_LINES_RE.sub("\n\n", text).strip()


def _page(color: str, heading: str, content: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <style>{_BASE_STYLE % {"color": color}}    </style>
</head>
<body>
    <div class='container'>
        <div class='header'>
            <h1>{heading}</h1>
        </div>
        <div class='content'>
{content}
        </div>
        <div class='footer'>
            <p>School Management System</p>
            <p>This is an automated email. Please do not reply.</p>
        </div>
    </div>
</body>
</html>"""


def render_assignment_graded(student_name: str, assignment_title: str, grade: Decimal | float) -> str:
    content = f"""            <p>Dear {html.escape(student_name)},</p>
            <p>Your assignment has been graded by your teacher.</p>
            <p><strong>Assignment:</strong> {html.escape(assignment_title)}</p>
            <div class='highlight'>{grade}%</div>
            <p>You can view detailed feedback and remarks by logging into the system.</p>"""
    return _page("#4CAF50", "Assignment Graded!", content)


def render_class_enrollment(
    student_name: str,
    class_name: str,
    course_name: str,
    teacher_name: str,
) -> str:
    content = f"""            <p>Dear {html.escape(student_name)},</p>
            <p>You have been successfully enrolled in a new class.</p>
            <div class='info-box'>
                <p><strong>Class:</strong> {html.escape(class_name)}</p>
                <p><strong>Course:</strong> {html.escape(course_name)}</p>
                <p><strong>Teacher:</strong> {html.escape(teacher_name)}</p>
            </div>
            <p>You can now view class assignments, submit your work and track your attendance.</p>"""
    return _page("#2196F3", f"Welcome to {html.escape(class_name)}!", content)
