"""
Письма клиенту по заявке через Resend.

Вызываются из роутеров фоновой задачей после успешной операции.
Ошибка отправки только логируется: заявка к этому моменту уже сохранена.
"""
import logging
from html import escape
from typing import Dict, Iterable, Mapping

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background-color: #22c55e; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }
    .content { background-color: #f9fafb; padding: 30px; border-radius: 0 0 8px 8px; }
    .button { display: inline-block; padding: 12px 24px; background-color: #22c55e; color: white; text-decoration: none; border-radius: 6px; }
    .sample { width: 100%; max-width: 260px; border: 1px solid #ddd; border-radius: 8px; margin: 8px 0; }
"""


def init_resend():
    resend.api_key = settings.RESEND_API_KEY


def _page(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><style>{STYLE}</style></head>
    <body>
        <div class="container">
            <div class="header"><h1>{title}</h1></div>
            <div class="content">{body}</div>
        </div>
    </body>
    </html>
    """


def _absolute(url: str) -> str:
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/{url.lstrip('/')}"


def _send(to_email: str, subject: str, html_content: str) -> Dict:
    if not settings.RESEND_API_KEY:
        logger.warning("Email not configured, skipping '%s' to %s", subject, to_email)
        return {"success": False, "error": "not configured"}

    init_resend()
    params = {
        "from": f"Custom Furniture <noreply@{settings.RESEND_FROM_DOMAIN}>",
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    }
    try:
        response = resend.Emails.send(params)
    except Exception as exc:
        logger.error("Failed to send '%s' to %s: %s", subject, to_email, exc)
        return {"success": False, "error": str(exc)}

    logger.info("Email '%s' sent to %s", subject, to_email)
    return {"success": True, "id": response.get("id")}


def request_confirmation_html(template_name: str) -> str:
    return _page("Custom Request Received!", f"""
        <p>Hello,</p>
        <p>Thank you for your custom furniture request for <strong>{escape(template_name)}</strong>.</p>
        <p>Our team will create samples based on your specifications
        and email them to you within 2-3 business days.</p>
    """)


def samples_ready_html(
    request_id: str,
    template_name: str,
    modifications: Mapping[str, str],
    samples: Iterable[str],
) -> str:
    mods = "".join(
        f"<li><strong>{escape(key.capitalize())}:</strong> {escape(value)}</li>"
        for key, value in modifications.items()
    )
    images = "".join(
        f'<img class="sample" src="{escape(_absolute(url), quote=True)}" alt="Sample" />'
        for url in samples
    )
    link = f"{settings.FRONTEND_URL.rstrip('/')}/custom-requests/{escape(request_id)}"
    return _page("Your Custom Furniture Samples Are Ready!", f"""
        <p>Hello,</p>
        <p>We've created samples for your <strong>{escape(template_name)}</strong> request.</p>
        {f"<ul>{mods}</ul>" if mods else ""}
        <div>{images}</div>
        <p>Select the sample you like or ask for adjustments on the request page.</p>
        <p style="text-align: center;"><a class="button" href="{link}">View &amp; Select Sample</a></p>
    """)


def send_request_confirmation(to_email: str, template_name: str) -> Dict:
    """Письмо после создания заявки"""
    return _send(
        to_email,
        f"Custom request received: {template_name}",
        request_confirmation_html(template_name),
    )


def send_samples_ready(
    to_email: str,
    request_id: str,
    template_name: str,
    modifications: Mapping[str, str],
    samples: Iterable[str],
) -> Dict:
    """Письмо с новой партией образцов"""
    return _send(
        to_email,
        f"Your samples are ready: {template_name}",
        samples_ready_html(request_id, template_name, modifications, samples),
    )
