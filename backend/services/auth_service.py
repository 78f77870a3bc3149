"""
Auth Service - Firebase identity

Verifies Firebase ID tokens sent by the client as ``Authorization: Bearer``
and resolves them to an AuthUser. Sign-in itself (Google popup, email) happens
in the browser against Firebase; the backend only verifies.
"""
from typing import Any, Callable, Dict, Optional

import structlog

from api.schemas import AuthUser
from config import Settings, get_settings
from core.exceptions import AuthenticationError, ConfigurationError

logger = structlog.get_logger()

_firebase_app = None


def init_firebase(settings: Optional[Settings] = None):
    """Initialize the default Firebase app once."""
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    settings = settings or get_settings()
    if not settings.firebase_enabled:
        raise ConfigurationError("FIREBASE_PROJECT_ID not configured")

    import firebase_admin
    from firebase_admin import credentials

    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    else:
        cred = credentials.ApplicationDefault()

    _firebase_app = firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
    logger.info("Firebase app initialized", project_id=settings.firebase_project_id)
    return _firebase_app


def user_from_claims(claims: Dict[str, Any]) -> AuthUser:
    """Map decoded ID token claims to an AuthUser."""
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise AuthenticationError("Token has no subject")
    return AuthUser(
        uid=uid,
        email=claims.get("email"),
        display_name=claims.get("name"),
        photo_url=claims.get("picture"),
    )


class FirebaseTokenVerifier:
    """Callable that turns an ID token into an AuthUser."""

    def __init__(self, verify: Optional[Callable[[str], Dict[str, Any]]] = None):
        if verify is None:
            from firebase_admin import auth as firebase_auth

            init_firebase()
            verify = firebase_auth.verify_id_token
        self._verify = verify

    def __call__(self, token: str) -> AuthUser:
        try:
            claims = self._verify(token)
        except AuthenticationError:
            raise
        except Exception as e:
            # firebase_admin raises InvalidIdTokenError / ExpiredIdTokenError /
            # RevokedIdTokenError / ValueError for bad tokens
            logger.warning("ID token verification failed", error_type=type(e).__name__)
            raise AuthenticationError(f"Invalid or expired token: {type(e).__name__}")

        user = user_from_claims(claims)
        logger.debug("ID token verified", uid=user.uid)
        return user


_verifier: Optional[FirebaseTokenVerifier] = None


def development_claims(token: str) -> Dict[str, Any]:
    """Unverified claims for local runs: the token is the uid."""
    return {"uid": token}


def _firebase_not_configured(token: str) -> Dict[str, Any]:
    raise AuthenticationError(
        "FIREBASE_PROJECT_ID not configured; set DEV_AUTH=true to use bearer tokens as uids"
    )


def build_token_verifier(settings: Optional[Settings] = None) -> FirebaseTokenVerifier:
    """
    Pick the verifier for the configured identity backend.

    Without Firebase, saved analyses live in memory and requests are either
    rejected with a 401 naming the missing config or, with dev_auth, keyed by
    the raw bearer token.
    """
    settings = settings or get_settings()
    if settings.firebase_enabled:
        return FirebaseTokenVerifier()
    if settings.dev_auth:
        logger.warning("Firebase not configured, accepting bearer tokens as uids")
        return FirebaseTokenVerifier(verify=development_claims)
    return FirebaseTokenVerifier(verify=_firebase_not_configured)


def get_token_verifier() -> FirebaseTokenVerifier:
    global _verifier
    if _verifier is None:
        _verifier = build_token_verifier()
    return _verifier
