"""HMAC-SHA256 signatures shared with the payment gateway."""

import hashlib
import hmac


def sign(secret: str, *parts) -> str:
    """Hex HMAC over the parts joined with `|`."""

    message = "|".join(str(part) for part in parts)
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signature_matches(secret: str, signature: str, *parts) -> bool:
    """Constant-time comparison of `signature` against the expected digest."""

    expected = sign(secret, *parts)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
