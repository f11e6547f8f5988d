import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from studio.core.logging_utils import request_context
from studio.core.settings import settings
from studio.core.templates import templates
from studio.services.csrf import csrf_ok, current_or_new_token, set_csrf_cookie
from studio.services.mail import send_contact_email
from studio.services.rate_limit import allow as rl_allow

router = APIRouter()
audit = logging.getLogger("audit")

SHOOT_TYPES = ("motocross", "portrait", "product", "other")


def _contact_response(request: Request, status_code: int = 200, **context):
    token = current_or_new_token(request)
    resp = templates.TemplateResponse(
        request,
        "contact.html",
        context={"csrf_token": token, "shoot_types": SHOOT_TYPES, "form": {}, **context},
        status_code=status_code,
    )
    set_csrf_cookie(resp, token)
    return resp


@router.get("/contact", response_class=HTMLResponse)
async def contact_page(request: Request):
    sent = request.query_params.get("sent") == "1"
    return _contact_response(request, status="success" if sent else None)


@router.post("/contact")
async def contact_submit(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    subject: str = Form(""),
    category: str = Form(""),
    message: str = Form(""),
    csrf_token: str = Form(""),
    hp: str = Form(""),
):
    form = {
        "name": name,
        "email": email,
        "phone": phone,
        "subject": subject,
        "category": category,
        "message": message,
    }
    client_ip = request.client.host if request.client else "unknown"
    if not rl_allow(
        f"contact:{client_ip}",
        int(getattr(settings, "CONTACT_RATE_LIMIT_ATTEMPTS", 3)),
        int(getattr(settings, "CONTACT_RATE_LIMIT_WINDOW_SECONDS", 60)),
    ):
        return _contact_response(
            request,
            status_code=429,
            status="error",
            error="Too many requests. Please wait a minute and try again.",
            form=form,
        )

    # Honeypot: if filled, drop silently as success
    if hp:
        return RedirectResponse("/contact?sent=1", status_code=303)

    if not (name.strip() and email.strip() and message.strip()):
        return _contact_response(
            request,
            status_code=400,
            status="error",
            error="Name, email and message are required.",
            form=form,
        )

    if not csrf_ok(request, csrf_token):
        audit.warning("contact.csrf.mismatch", extra=request_context(request))
        return _contact_response(
            request,
            status_code=400,
            status="error",
            error="Invalid form token. Please refresh and try again.",
            form=form,
        )

    if (
        len(name) > 80
        or len(email) > 254
        or len(phone) > 40
        or len(subject) > 150
        or len(message) > 4000
    ):
        return _contact_response(
            request,
            status_code=400,
            status="error",
            error="One or more fields exceed the allowed length.",
            form=form,
        )

    try:
        await send_contact_email(
            name=name.strip(),
            from_email=email.strip(),
            message=message,
            phone=phone.strip() or None,
            subject=subject.strip() or None,
            category=category if category in SHOOT_TYPES else None,
        )
    except Exception as exc:
        # SMTP errors come in many flavours (aiosmtplib, socket, TLS)
        audit.error("contact.send.failed", extra=request_context(request, error=str(exc)))
        return _contact_response(
            request,
            status_code=502,
            status="error",
            error="Your message could not be sent. Please try again later.",
            form=form,
        )
    audit.info("contact.sent", extra=request_context(request, category=category or None))
    return RedirectResponse("/contact?sent=1", status_code=303)
