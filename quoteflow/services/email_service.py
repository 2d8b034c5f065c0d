"""
Email service for quote notifications and lead assignment.
Uses Flask-Mail for SMTP integration with UTF-8 support.
"""
import logging
from typing import Optional, Dict, Any

from flask import current_app
from flask_mail import Mail, Message

from quoteflow.utils.formatters import money_eur, date_fr

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is properly configured and enabled.
    Prevents 500 errors in dev or misconfigured environments.
    """
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def share_url(share_token: str) -> str:
    base = (current_app.config.get('PUBLIC_BASE_URL') or '').rstrip('/')
    return f"{base}/share/{share_token}"


def _result(success: bool, error: Optional[str] = None) -> Dict[str, Any]:
    return {'success': success, 'error': error}


def _quote_email_bodies(quote, company_name: str, client_name: str, intro: str):
    link = share_url(quote.share_token)
    valid_until = date_fr(quote.valid_until) if quote.valid_until else None
    validity_line = f"Ce devis est valable jusqu'au {valid_until}." if valid_until else ""

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <style>
            body {{ font-family: Arial, sans-serif; color: #333; }}
            .container {{ max-width: 600px; margin: auto; padding: 20px; }}
            .header {{ background: #1f4e79; color: #fff; padding: 20px; text-align: center; }}
            .content {{ background: #fff; padding: 30px; }}
            .button {{
                display: inline-block;
                padding: 12px 30px;
                background: #28a745;
                color: #fff !important;
                text-decoration: none;
                border-radius: 5px;
            }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>Devis {quote.quote_number}</h1>
            </div>
            <div class="content">
                <p>Bonjour <strong>{client_name}</strong>,</p>
                <p>{intro}</p>
                <p><strong>{quote.title or ''}</strong></p>
                <p>Montant TTC : <strong>{money_eur(quote.final_amount)}</strong></p>
                <p>{validity_line}</p>
                <div style="text-align:center;margin:30px 0;">
                    <a href="{link}" class="button">Consulter le devis</a>
                </div>
                <p style="font-size: 13px; color: #666;">{company_name}</p>
            </div>
        </div>
    </body>
    </html>
    """

    text_body = f"""
Bonjour {client_name},

{intro}

Devis {quote.quote_number} - {quote.title or ''}
Montant TTC : {money_eur(quote.final_amount)}
{validity_line}

Consulter le devis :
{link}

{company_name}
"""
    return html_body, text_body


def _send_quote_email(quote, client, company_profile, email_override, subject_prefix, intro, kind):
    recipient = email_override or (client.email if client else None)
    if not recipient:
        logger.warning(f"[EMAIL] No recipient for quote {quote.quote_number} ({kind})")
        return _result(False, "Aucune adresse email pour ce client")

    try:
        logger.info(f"[EMAIL] Preparing {kind} email for quote {quote.quote_number} -> {recipient}")

        if not _mail_enabled():
            logger.warning(f"[MAIL DISABLED] {kind} email skipped for {recipient}")
            return _result(True)

        company_name = company_profile.company_name if company_profile else ''
        client_name = client.name if client else recipient
        html_body, text_body = _quote_email_bodies(quote, company_name, client_name, intro)

        msg = Message(
            subject=f"{subject_prefix} {quote.quote_number} - {company_name}".strip(' -'),
            recipients=[recipient],
            body=text_body,
            html=html_body,
            reply_to=company_profile.email if company_profile and company_profile.email else None,
        )
        mail.send(msg)
        logger.info(f"[EMAIL] ✓ {kind} email sent to {recipient}")
        return _result(True)

    except Exception as e:
        logger.exception(f"[EMAIL] ✗ Error sending {kind} email for quote {quote.quote_number}: {e}")
        return _result(False, str(e))


def send_quote_sent_email(quote, client, company_profile=None, email_override: Optional[str] = None) -> Dict[str, Any]:
    """
    Send the "your quote is ready" notification.

    Args:
        quote: Quote row (needs quote_number, share_token, amounts)
        client: Client row (recipient unless email_override is given)
        company_profile: Sender's company profile (optional)
        email_override: Recipient address taking precedence over the client's (lead email)

    Returns:
        {'success': bool, 'error': str | None}. Never raises.
    """
    return _send_quote_email(
        quote, client, company_profile, email_override,
        subject_prefix="Votre devis",
        intro="Votre devis est prêt. Vous pouvez le consulter en ligne via le lien ci-dessous.",
        kind='quote sent',
    )


def send_quote_updated_email(quote, client, company_profile=None, email_override: Optional[str] = None) -> Dict[str, Any]:
    """Send the "your quote was updated" notification (re-send of an already sent quote)."""
    return _send_quote_email(
        quote, client, company_profile, email_override,
        subject_prefix="Mise à jour de votre devis",
        intro="Votre devis a été mis à jour. Consultez la nouvelle version via le lien ci-dessous.",
        kind='quote updated',
    )


def send_lead_assignment_email(to_email: str, lead) -> bool:
    """Notify an artisan that a lead was assigned to them."""
    try:
        if not _mail_enabled():
            logger.info(f"[MAIL DISABLED] Lead assignment email skipped for {to_email}")
            return True

        body = f"""
Bonjour,

Une nouvelle demande vous a été attribuée.

Client : {lead.client_name}
Ville : {lead.city or '-'}
Projet : {lead.project_description or '-'}
"""
        msg = Message(
            subject=f"Nouvelle demande : {lead.client_name}",
            recipients=[to_email],
            body=body,
        )
        mail.send(msg)
        return True

    except Exception:
        logger.exception("Error sending lead assignment email")
        return False
