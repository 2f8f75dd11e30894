"""Shared FastAPI dependencies.

Long-lived collaborators (broadcaster, OTP backend, verifier) are built once in
the application lifespan and kept on app.state; these accessors hand them to
routes.
"""

from fastapi import Request

from gcx.config import Settings
from gcx.events.broadcaster import EventBroadcaster
from gcx.otp.backends import OtpBackend
from gcx.otp.verifier import PasscodeVerifier


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_otp_backend(request: Request) -> OtpBackend:
    return request.app.state.otp_backend


def get_verifier(request: Request) -> PasscodeVerifier:
    return request.app.state.verifier
