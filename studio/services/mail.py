from email.message import EmailMessage

import aiosmtplib

from studio.core.settings import settings


def mail_configured() -> bool:
    return bool(settings.SMTP_USER and settings.SMTP_PASSWORD and settings.CONTACT_EMAIL_TO)


async def send_contact_email(
    name: str,
    from_email: str,
    message: str,
    phone: str | None = None,
    subject: str | None = None,
    category: str | None = None,
):
    """Forward a contact form submission to CONTACT_EMAIL_TO. No-op if not configured."""
    if not mail_configured():
        return
    msg = EmailMessage()
    msg["From"] = settings.SMTP_USER
    msg["To"] = settings.CONTACT_EMAIL_TO
    msg["Reply-To"] = from_email
    topic = f" [{category}]" if category else ""
    msg["Subject"] = f"[{settings.SITE_NAME}{topic}] {subject or 'Contact request'} from {name}"
    body = (
        "A new message was submitted via /contact.\n\n"
        f"From: {name} <{from_email}>\n"
        f"Phone: {phone or 'N/A'}\n"
        f"Shoot type: {category or 'N/A'}\n"
        "\n--- Message ---\n"
        f"{message}\n"
    )
    msg.set_content(body)
    await aiosmtplib.send(
        msg,
        hostname=settings.SMTP_HOST,
        port=int(settings.SMTP_PORT),
        start_tls=True,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
    )
