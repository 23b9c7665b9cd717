"""
Healthcare Portal - Email Templates

HTML bodies for account emails. Hospital mail uses the blue palette,
lab mail the green one.
"""

from html import escape

from healthportal.auth.models import Role


_PALETTE = {
    Role.HOSPITAL: ("#0369a1", "#e0f2fe"),
    Role.LAB: ("#059669", "#d1fae5"),
}

_LAYOUT = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="UTF-8">
    <style>
      body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; }}
      .container {{ max-width: 600px; margin: 0 auto; background: {accent}; }}
      .header {{ background: {primary}; color: white; padding: 32px 20px; text-align: center; }}
      .content {{ padding: 32px 20px; background: white; margin: 20px; border-radius: 8px; }}
      .cta-button {{ display: inline-block; background: {primary}; color: white; padding: 12px 32px;
                     text-decoration: none; border-radius: 6px; font-weight: bold; }}
      .code-box {{ background: #f5f5f5; padding: 12px; font-family: monospace; word-break: break-all; }}
      .footer {{ padding: 16px; text-align: center; font-size: 12px; color: #666; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="header"><h1>{title}</h1></div>
      <div class="content">{body}</div>
      <div class="footer">&copy; HealthCare Portal. All rights reserved.</div>
    </div>
  </body>
</html>
"""


def _render(role: Role, title: str, body: str) -> str:
    primary, accent = _PALETTE[role]
    return _LAYOUT.format(primary=primary, accent=accent, title=title, body=body)


def password_reset_email(reset_link: str, role: Role, expires_minutes: int) -> str:
    body = f"""
        <p>We received a request to reset the password for your HealthCare Portal account.</p>
        <p><strong>This link expires in {expires_minutes} minutes.</strong>
           If you didn't request this, you can ignore this email.</p>
        <p style="text-align: center;"><a href="{reset_link}" class="cta-button">Reset Your Password</a></p>
        <p>Or copy and paste this link in your browser:</p>
        <div class="code-box">{reset_link}</div>
    """
    return _render(role, "Password Reset Request", body)


def welcome_email(organization_name: str, role: Role, login_link: str) -> str:
    portal = "hospital" if role is Role.HOSPITAL else "laboratory"
    body = f"""
        <p>Hello {escape(organization_name)},</p>
        <p>Your {portal} account on HealthCare Portal is ready.</p>
        <p style="text-align: center;"><a href="{login_link}" class="cta-button">Go to Dashboard</a></p>
    """
    return _render(role, "Welcome to HealthCare Portal", body)


def password_changed_email(organization_name: str, role: Role) -> str:
    body = f"""
        <p>Hello {escape(organization_name)},</p>
        <p>The password for your HealthCare Portal account was just changed, and other
           signed-in devices were signed out.</p>
        <p>If this wasn't you, reset your password immediately and contact support.</p>
    """
    return _render(role, "Your Password Was Changed", body)
