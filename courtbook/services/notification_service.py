"""Booking email notifications."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Iterable

from fastapi import BackgroundTasks

from courtbook.core.config import get_settings

logger = logging.getLogger(__name__)


def schedule_email(
    background_tasks: BackgroundTasks,
    *,
    recipients: Iterable[str],
    subject: str,
    body: str,
) -> None:
    """Queue an email to be delivered asynchronously."""
    recipients_list = [addr for addr in recipients if addr]
    if not recipients_list:
        logger.debug("No recipients provided for email; skipping")
        return
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.debug("SMTP disabled; skipping email to %s", recipients_list)
        return
    background_tasks.add_task(_send_email, recipients_list, subject, body)


def build_booking_confirmation_email(
    *,
    customer_name: str,
    court_name: str,
    booking_date: str,
    start_time: str,
    end_time: str,
    final_price: str,
    discount: str | None,
) -> tuple[str, str]:
    settings = get_settings()
    subject = f"Booking received: {court_name} on {booking_date}"
    lines = [
        f"Hi {customer_name},",
        "",
        f"Your booking at {settings.venue_name} has been received.",
        f"Court: {court_name}",
        f"Date: {booking_date}",
        f"Time: {start_time} - {end_time}",
    ]
    if discount:
        lines.append(f"Discount: {discount} {settings.currency}")
    lines.extend(
        [
            f"Total: {final_price} {settings.currency}",
            "",
            "If you need to make changes, please contact us.",
        ]
    )
    return subject, "\n".join(lines)


def build_cancellation_email(
    *, customer_name: str, court_name: str, booking_date: str, start_time: str
) -> tuple[str, str]:
    subject = f"Booking cancelled: {court_name} on {booking_date}"
    body = (
        f"Hi {customer_name},\n\n"
        f"Your booking for {court_name} on {booking_date} at {start_time} has been cancelled.\n"
    )
    return subject, body


def _send_email(recipients: list[str], subject: str, body: str) -> None:
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.info("SMTP settings missing; skipping email delivery to %s", recipients)
        return

    message = EmailMessage()
    message["Subject"] = subject
    message["To"] = ", ".join(recipients)
    message["From"] = settings.smtp_from or settings.smtp_username or "no-reply@courtbook.local"
    message.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as smtp:
            if settings.smtp_username and settings.smtp_password:
                smtp.starttls()
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)
        logger.info("Email sent to %s", recipients)
    except Exception as exc:  # pragma: no cover - logging side-effect only
        logger.exception("Failed to send email to %s: %s", recipients, exc)


def notify_booking_confirmation(reservation, background_tasks: BackgroundTasks) -> None:
    customer = getattr(reservation, "customer", None)
    if customer is None or not customer.email:
        return
    discount = reservation.discount_amount
    subject, body = build_booking_confirmation_email(
        customer_name=customer.name,
        court_name=getattr(reservation.court, "name", "your court"),
        booking_date=reservation.booking_date.isoformat(),
        start_time=reservation.start_time,
        end_time=reservation.end_time,
        final_price=f"{reservation.final_price:.2f}",
        discount=f"{discount:.2f}" if discount else None,
    )
    schedule_email(
        background_tasks,
        recipients=[customer.email],
        subject=subject,
        body=body,
    )


def notify_cancellation(reservation, background_tasks: BackgroundTasks) -> None:
    customer = getattr(reservation, "customer", None)
    if customer is None or not customer.email:
        return
    subject, body = build_cancellation_email(
        customer_name=customer.name,
        court_name=getattr(reservation.court, "name", "your court"),
        booking_date=reservation.booking_date.isoformat(),
        start_time=reservation.start_time,
    )
    schedule_email(
        background_tasks,
        recipients=[customer.email],
        subject=subject,
        body=body,
    )
