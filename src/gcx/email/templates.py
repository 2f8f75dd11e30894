"""
Email templates.

Inline CSS only, for email client compatibility. Each template function
returns (subject, html_body, text_body).
"""

from __future__ import annotations

BG_PAGE = "#F4F5F7"
BG_CARD = "#FFFFFF"
BG_CODE = "#F5F5F5"
TEXT_PRIMARY = "#333333"
TEXT_SECONDARY = "#666666"
TEXT_MUTED = "#999999"
BORDER = "#E0E0E0"


def _base_layout(content: str, app_name: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Arial, sans-serif;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px; background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 5px;">
        {content}
        <hr style="border: none; border-top: 1px solid {BORDER}; margin: 20px 0;">
        <p style="color: {TEXT_MUTED}; font-size: 12px; text-align: center;">This is an automated message, please do not reply.</p>
    </div>
</body>
</html>"""


def otp_code(code: str, ttl_minutes: int, app_name: str = "GCX Seller Panel") -> tuple[str, str, str]:
    """One-time passcode email, sent to users and to the operator address alike."""
    subject = f"Your OTP for {app_name}"
    validity = "1 hour" if ttl_minutes == 60 else f"{ttl_minutes} minutes"
    content = f"""\
<h2 style="color: {TEXT_PRIMARY}; text-align: center;">{subject}</h2>
<p style="color: {TEXT_SECONDARY}; font-size: 16px;">Your One-Time Password (OTP) is:</p>
<div style="background-color: {BG_CODE}; padding: 15px; text-align: center; font-size: 24px; letter-spacing: 5px; margin: 20px 0; border-radius: 5px;">
    <strong>{code}</strong>
</div>
<p style="color: {TEXT_SECONDARY}; font-size: 14px;">This OTP is valid for {validity}. Please do not share this OTP with anyone.</p>
<p style="color: {TEXT_SECONDARY}; font-size: 14px;">If you didn't request this OTP, please ignore this email.</p>"""
    text = (
        f"{subject}\n\n"
        f"Your One-Time Password (OTP) is: {code}\n\n"
        f"This OTP is valid for {validity}. Please do not share this OTP with anyone.\n"
        "If you didn't request this OTP, please ignore this email.\n"
    )
    return subject, _base_layout(content, app_name), text
