from typing import Optional


def get_bearer(auth: Optional[str]) -> Optional[str]:
    """Extract the token from a `Bearer <token>` Authorization header"""
    scheme, _, token = (auth or '').partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
