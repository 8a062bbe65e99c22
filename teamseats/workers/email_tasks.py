"""
Email background tasks.

Organization invitation emails sent through Resend.
"""

import html
import logging
from urllib.parse import quote

import resend

from teamseats.core.config import settings
from teamseats.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def build_invitation_email(
    to_email: str,
    org_name: str,
    inviter_name: str,
    role: str,
    invitation_token: str,
    frontend_url: str,
) -> resend.Emails.SendParams:
    accept_url = html.escape(
        f"{frontend_url}/organizations/email-invite?token={quote(invitation_token)}"
    )
    safe_org = html.escape(org_name)
    safe_inviter = html.escape(inviter_name)
    safe_role = html.escape(role)
    return {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": f"{inviter_name} invited you to join {org_name}",
        "html": f"""
            <h2>You've been invited to {safe_org}</h2>
            <p><strong>{safe_inviter}</strong> has invited you to join
            <strong>{safe_org}</strong> as a <strong>{safe_role}</strong>.</p>
            <p>
                <a href="{accept_url}"
                   style="background:#6366f1;color:#fff;padding:12px 24px;
                          border-radius:6px;text-decoration:none;display:inline-block;">
                    Join {safe_org}
                </a>
            </p>
            <p>This invitation expires in {settings.EMAIL_INVITE_EXPIRE_DAYS} days.</p>
            <p>If you did not expect this invitation, you can safely ignore this email.</p>
        """,
    }


@celery_app.task(
    name="teamseats.workers.email_tasks.send_invitation_email", bind=True, max_retries=3
)
def send_invitation_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    org_name: str,
    inviter_name: str,
    role: str,
    invitation_token: str,
    frontend_url: str,
) -> dict[str, str]:
    """
    Send an organization email invite via Resend.

    Args:
        to_email: Recipient email address.
        org_name: Organization display name.
        inviter_name: Display name of the person who sent the invite.
        role: Role the invite grants (member/admin/owner).
        invitation_token: Email invite token for the accept link.
        frontend_url: Frontend base URL for constructing the accept link.

    Returns:
        Dict with status and message_id.
    """
    try:
        resend.api_key = settings.RESEND_API_KEY
        params = build_invitation_email(
            to_email, org_name, inviter_name, role, invitation_token, frontend_url
        )
        response = resend.Emails.send(params)
        return {"status": "sent", "message_id": response["id"]}

    except Exception as exc:
        logger.error("Sending invitation email to %s failed: %s", to_email, exc)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
