"""Security helpers.

Signed session-token utilities. Login itself is handled by the firm's identity
provider; its sign-in callback calls `create_session_token` to mint the
`session_token` cookie once it has matched the account to a `users` row. This
service only verifies that cookie and resolves the user id it carries.
"""

from datetime import datetime, timedelta, timezone

from itsdangerous import BadSignature, URLSafeSerializer

from lexbill.config import settings

# Signed serializer protects session payload integrity.
serializer = URLSafeSerializer(settings.secret_key, salt="lexbill-session")


def create_session_token(user_id: int) -> str:
    """Mint the signed, expiring session cookie value for `user_id`."""
    payload = {
        "sub": user_id,
        "exp": (datetime.now(timezone.utc) + timedelta(hours=settings.session_max_age_hours)).timestamp(),
    }
    return serializer.dumps(payload)


def read_session_token(token: str) -> int | None:
    try:
        payload = serializer.loads(token)
    except BadSignature:
        return None
    if payload.get("exp", 0) < datetime.now(timezone.utc).timestamp():
        return None
    return payload.get("sub")
