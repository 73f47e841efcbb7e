"""Bearer credential signing and verification.

Tokens are itsdangerous URL-safe timed signatures over {"uid": <user id>},
signed with settings.secret_key. Issuing tokens on login is handled by the
identity service in front of this API; ``create_access_token`` exists for
seeding and tests.
"""

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .config import settings

_SALT = "rfq-tracker-auth"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.secret_key, salt=_SALT)


def create_access_token(user_id: int) -> str:
    return _serializer().dumps({"uid": user_id})


def decode_access_token(token: str) -> int | None:
    """Return the user id carried by a valid token, or None."""
    if not token:
        return None
    try:
        payload = _serializer().loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired:
        return None
    except BadSignature:
        return None
    uid = payload.get("uid") if isinstance(payload, dict) else None
    return uid if isinstance(uid, int) else None
