from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app

from utils.exceptions import TokenError
from utils.security import ACCESS


def jwt_required():
    """Require a valid access token in the Authorization header; sets g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()
            services = current_app.extensions["auth_tokens"]
            try:
                decoded = services.signer.verify(token, ACCESS)
            except TokenError as e:
                abort(401, description=str(e))

            user = services.identities.find_by_id(decoded.get("sub"))
            if not user:
                abort(401, description="User not found")
            g.current_user = user
            g.current_token_claims = decoded
            return fn(*args, **kwargs)

        return wrapper

    return decorator
