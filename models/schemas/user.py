import re

from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError

# Letter first, then 2-19 of letters, digits, "_", "." or "-"
USERNAME_RE = r"^[a-zA-Z][a-zA-Z0-9_.-]{2,19}$"
# At least one lower, upper, digit and symbol from @$!%*?&
PASSWORD_RE = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]+$"
PASSWORD_MIN_LENGTH = 12

_password_re = re.compile(PASSWORD_RE)


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class _EmailNormalizingSchema(Schema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class SignupSchema(_EmailNormalizingSchema):
    name = fields.String(
        required=True,
        validate=[
            validate.Length(min=3, max=15),
            validate.Regexp(USERNAME_RE, error="Name must start with a letter and use letters, digits, '_', '.' or '-'."),
        ],
    )
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")
        if not _password_re.match(value):
            raise ValidationError(
                "Password must contain upper and lower case letters, a digit and one of @$!%*?&."
            )


class LoginSchema(_EmailNormalizingSchema):
    email = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    name = fields.String()
    email = fields.String()
