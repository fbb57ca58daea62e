import smtplib
from datetime import datetime
from email.message import EmailMessage

from flask import current_app

from models import db
from models.donation import Donation


def email_configured() -> bool:
    cfg = current_app.config
    return bool(cfg.get("SMTP_HOST") and (cfg.get("SMTP_FROM_EMAIL") or cfg.get("SMTP_USERNAME")))


def send_email(to_email: str, subject: str, body: str, html: str = None):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = f"{current_app.config.get('ORG_NAME')} <{from_email}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def format_inr(amount) -> str:
    # 2500 -> "₹2,500", 499.50 -> "₹499.50"
    value = f"{amount:,.2f}"
    if value.endswith(".00"):
        value = value[:-3]
    return f"₹{value}"


def _receipt_bodies(donor_name: str, amount_text: str, payment_reference: str):
    org = current_app.config.get("ORG_NAME")
    text_lines = [
        f"Thank you, {donor_name}!",
        "",
        f"We've received your donation ({amount_text}). Your support helps young athletes "
        "with training, equipment, and opportunities.",
    ]
    if payment_reference:
        text_lines += ["", f"Payment reference: {payment_reference}"]
    text_lines += ["", "With gratitude,", org]

    ref_html = f"<p><strong>Payment reference:</strong> {payment_reference}</p>" if payment_reference else ""
    html = (
        f"<div style=\"font-family: system-ui; line-height: 1.6; color: #111827;\">"
        f"<h2>Thank you, {donor_name}!</h2>"
        f"<p>We've received your donation <strong>({amount_text})</strong>. Your support helps young "
        f"athletes with training, equipment, and opportunities.</p>"
        f"{ref_html}"
        f"<p>With gratitude,<br/>{org}</p></div>"
    )
    return "\n".join(text_lines), html


def _set_receipt_mark(donation_id: int, value, only_if_unset: bool) -> bool:
    q = Donation.query.filter(Donation.id == donation_id)
    if only_if_unset:
        q = q.filter(Donation.confirmation_email_sent_at.is_(None))
    try:
        updated = q.update({"confirmation_email_sent_at": value}, synchronize_session=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return bool(updated)


def send_donation_receipt(donation_id: int):
    """
    Runs on the notifier. The receipt is claimed with a conditional UPDATE
    before anything is sent, so when the checkout callback and the webhook
    both queue a receipt only the worker that wins the claim emails the
    donor. A failed send releases the claim for the next settlement.
    """
    donation = db.session.get(Donation, donation_id)
    if donation is None or not donation.donor_email or donation.confirmation_email_sent_at:
        return
    if not _set_receipt_mark(donation_id, datetime.utcnow(), only_if_unset=True):
        return

    donor_name = donation.donor_name or "Supporter"
    text, html = _receipt_bodies(donor_name, format_inr(donation.amount), donation.payment_reference)
    subject = f"Thank you for your donation to {current_app.config.get('ORG_NAME')}"

    ok, err = send_email(donation.donor_email, subject, text, html=html)
    if not ok:
        _set_receipt_mark(donation_id, None, only_if_unset=False)
        raise RuntimeError(f"donation receipt for {donation.razorpay_order_id} not sent: {err}")
