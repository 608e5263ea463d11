from marshmallow import Schema, fields, validate

class LoginSchema(Schema):
    usuario = fields.Str(required=True, validate=validate.Length(min=1), error_messages={"required": "El usuario o correo es obligatorio."})
    contrasena = fields.Str(required=True, load_only=True, validate=validate.Length(min=1), error_messages={"required": "La contraseña es obligatoria."})


class RegistroSchema(Schema):
    usuario = fields.Str(required=True, validate=validate.Length(min=3, error="El usuario debe tener al menos 3 caracteres."))
    correo = fields.Email(required=True, error_messages={"invalid": "Correo electrónico inválido."})
    contrasena = fields.Str(required=True, load_only=True, validate=validate.Length(min=6, error="La contraseña debe tener al menos 6 caracteres."))


class VerificacionSchema(Schema):
    correo = fields.Email(required=True)
    token = fields.Str(required=True, validate=validate.Length(min=1))
    usuario = fields.Str(required=True)
    contrasena = fields.Str(load_default=None, allow_none=True, load_only=True)


class UsuarioSchema(Schema):
    """Serialización del usuario autenticado que viaja en la sesión."""
    id = fields.Raw(required=True)
    usuario = fields.Str(allow_none=True)
    rol = fields.Str(allow_none=True)
    areadetrabajo = fields.Str(allow_none=True)
    correo = fields.Str(allow_none=True)
