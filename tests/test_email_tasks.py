"""
Invitation email tests.

Verifies that:
- User-controlled names are HTML-escaped in the email body
- The accept link points at the email invite page
"""

from teamseats.workers.email_tasks import build_invitation_email


def test_names_are_escaped():
    params = build_invitation_email(
        to_email="new@example.com",
        org_name="<script>alert(1)</script> & Co",
        inviter_name='Eve "<b>"',
        role="member",
        invitation_token="tok123",
        frontend_url="https://app.example.com",
    )

    body = params["html"]
    assert "<script>" not in body
    assert "&lt;script&gt;alert(1)&lt;/script&gt; &amp; Co" in body
    assert "Eve &quot;&lt;b&gt;&quot;" in body
    assert "<b>" not in body


def test_accept_link():
    params = build_invitation_email(
        to_email="new@example.com",
        org_name="Acme",
        inviter_name="Olivia",
        role="admin",
        invitation_token="tok123",
        frontend_url="https://app.example.com",
    )

    assert params["to"] == ["new@example.com"]
    assert params["subject"] == "Olivia invited you to join Acme"
    assert 'href="https://app.example.com/organizations/email-invite?token=tok123"' in params["html"]
    assert "<strong>admin</strong>" in params["html"]
