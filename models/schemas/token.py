from marshmallow import Schema, fields, validate

# header.payload.signature, base64url segments
JWT_RE = r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$"


class RefreshSchema(Schema):
    refresh_token = fields.String(
        required=True,
        validate=validate.Regexp(JWT_RE, error="refresh_token must be a valid JWT."),
    )


class TokenPairOutSchema(Schema):
    """Serialises services.token_lifecycle.TokenPair."""
    id = fields.String(attribute="user_id")
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.Constant("bearer")
    expires_in = fields.Integer()
