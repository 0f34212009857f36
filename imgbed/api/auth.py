"""
Operator login.

The session cookie is a signed token (HS256) holding the operator name, an expiry and a
fingerprint of the operator credentials. Changing the credentials or the secret key
therefore ends all running sessions.
"""

import hashlib
import hmac
import logging
import secrets
import time
from typing import Annotated

from authlib.common.errors import AuthlibBaseError
from authlib.jose import jwt
from fastapi import APIRouter, Form, Security
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import APIKeyCookie

from imgbed.config import Settings, get_settings
from imgbed.errors import Unauthorized
from imgbed.models import User

session_cookie = APIKeyCookie(name=get_settings().cookie_name, scheme_name="Session Cookie", auto_error=False)

app_auth = APIRouter(prefix=get_settings().admin_route, tags=["auth"])


class InvalidToken(ValueError):
    pass


def _secret(settings: Settings) -> str:
    if not settings.secret_key:
        raise InvalidToken("No secret key configured, cannot sign or verify sessions")
    return settings.secret_key


def credential_fingerprint(settings: Settings) -> str:
    credentials = f"{settings.admin_user}:{settings.admin_password}".encode("utf-8")
    return hmac.new(_secret(settings).encode("utf-8"), credentials, hashlib.sha256).hexdigest()[:16]


def check_credentials(username: str, password: str) -> bool:
    settings = get_settings()
    if not (settings.admin_user and settings.admin_password):
        return False
    user_ok = secrets.compare_digest(username.encode("utf-8"), settings.admin_user.encode("utf-8"))
    password_ok = secrets.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))
    return user_ok and password_ok


def create_session_token(username: str, now: int | None = None) -> str:
    settings = get_settings()
    now = int(time.time()) if now is None else now
    payload = dict(sub=username, iat=now, exp=now + settings.session_max_age, cfp=credential_fingerprint(settings))
    return jwt.encode({"alg": "HS256"}, payload, _secret(settings)).decode("utf-8")


def verify_session_token(token: str) -> User:
    """
    Verifies the given session token and returns the operator

    raises a InvalidToken exception if the token could not be validated
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, _secret(settings))
        claims.validate()
    except AuthlibBaseError as e:
        raise InvalidToken(e)
    if missing := {"sub", "exp", "cfp"} - set(claims.keys()):
        raise InvalidToken(f"Invalid token, missing keys {missing}")
    if not hmac.compare_digest(claims["cfp"], credential_fingerprint(settings)):
        raise InvalidToken("Operator credentials changed since this session was created")
    return User(name=claims["sub"])


async def authenticated_admin(token: str | None = Security(session_cookie)) -> User:
    """Dependency for the management api: the logged in operator, or a 401"""
    if token is None:
        raise Unauthorized()
    try:
        return verify_session_token(token)
    except InvalidToken as e:
        logging.info(f"Rejected session: {e}")
        raise Unauthorized() from e


@app_auth.post("/login")
def login(username: Annotated[str, Form()], password: Annotated[str, Form()]):
    """Log in with the operator credentials. Sets the session cookie and redirects to the management page."""
    settings = get_settings()
    if not check_credentials(username, password):
        logging.info(f"Refused login for {username!r}")
        return JSONResponse(status_code=401, content={"error": "Invalid username or password"})
    try:
        token = create_session_token(username)
    except InvalidToken as e:
        logging.error(f"Cannot create session: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    response = RedirectResponse(settings.admin_route, status_code=302)
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.session_max_age,
        path=settings.admin_route,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
    )
    return response


@app_auth.get("/logout")
def logout():
    settings = get_settings()
    response = RedirectResponse(settings.admin_route, status_code=302)
    response.delete_cookie(
        key=settings.cookie_name, path=settings.admin_route, httponly=True, samesite="strict", secure=settings.secure_cookies
    )
    return response
