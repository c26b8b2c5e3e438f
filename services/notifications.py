# services/notifications.py
"""
Outbound purchase-confirmation mail over SMTP.

Configuration (env first, Flask config second):
  SMTP_HOST       mail relay; when unset, mail is disabled and only logged
  SMTP_PORT       default 587
  SMTP_USER / SMTP_PASSWORD   optional login
  SMTP_USE_TLS    "1" (default) issues STARTTLS
  MAIL_FROM       sender address
"""
from __future__ import annotations
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jinja2 import Environment

from services.currency import format_currency
from services.payments.config import cfg

logger = logging.getLogger(__name__)

_env = Environment(autoescape=True)

PURCHASE_HTML = _env.from_string("""
<!doctype html>
<html>
  <body style="font-family:Arial,Helvetica,sans-serif;background:#f6f9fc;padding:24px">
    <div style="max-width:560px;margin:0 auto;background:#fff;border-radius:8px;padding:24px">
      <h1 style="margin-top:0">UpSkill</h1>
      <p>Hola {{ name }},</p>
      <p>Tu compra de <strong>{{ course_name }}</strong> fue confirmada.</p>
      <table style="width:100%;border-collapse:collapse">
        <tr><td>Monto</td><td style="text-align:right">{{ amount }}</td></tr>
        <tr><td>Transacción</td><td style="text-align:right">{{ transaction_id }}</td></tr>
        <tr><td>Fecha</td><td style="text-align:right">{{ purchase_date }}</td></tr>
      </table>
      <p><a href="{{ course_url }}">Ir al curso</a></p>
    </div>
  </body>
</html>
""")

PURCHASE_TEXT = _env.from_string(
    "Hola {{ name }},\n\n"
    "Tu compra de {{ course_name }} fue confirmada.\n"
    "Monto: {{ amount }}\nTransacción: {{ transaction_id }}\nFecha: {{ purchase_date }}\n\n"
    "Ir al curso: {{ course_url }}\n"
)


@dataclass
class PurchaseConfirmation:
    to_email: str
    name: str | None
    course_name: str
    amount_cents: int
    currency: str
    transaction_id: str
    purchase_date: datetime
    course_url: str


def mail_enabled() -> bool:
    return bool(cfg("SMTP_HOST"))


def _send(to: str, subject: str, html: str, text: str) -> None:
    host = cfg("SMTP_HOST")
    port = int(cfg("SMTP_PORT") or "587")
    sender = cfg("MAIL_FROM") or "no-reply@upskill.local"

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    msg.attach(MIMEText(text, "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))

    with smtplib.SMTP(host, port, timeout=10) as server:
        if (cfg("SMTP_USE_TLS") or "1") in ("1", "true", "yes", "on"):
            server.starttls()
        user, pwd = cfg("SMTP_USER"), cfg("SMTP_PASSWORD")
        if user and pwd:
            server.login(user, pwd)
        server.sendmail(sender, [to], msg.as_string())


def send_purchase_confirmation(data: PurchaseConfirmation) -> bool:
    """Render and send the confirmation. Returns False when mail is disabled; raises on SMTP failure."""
    ctx = {
        "name": data.name or "Usuario",
        "course_name": data.course_name,
        "amount": format_currency(data.amount_cents, data.currency),
        "transaction_id": data.transaction_id,
        "purchase_date": data.purchase_date.strftime("%d/%m/%Y %H:%M"),
        "course_url": data.course_url,
    }
    subject = f"Confirmación de compra: {data.course_name}"
    if not mail_enabled():
        logger.info("Mail disabled; would send '%s' to %s", subject, data.to_email)
        return False
    _send(data.to_email, subject, PURCHASE_HTML.render(**ctx), PURCHASE_TEXT.render(**ctx))
    logger.info("Purchase confirmation sent to %s (tx=%s)", data.to_email, data.transaction_id)
    return True
