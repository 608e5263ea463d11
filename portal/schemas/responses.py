from marshmallow import Schema, fields

class ResponseSchema(Schema):
    """Sobre estándar de las respuestas de la API: éxito, datos o error."""
    success = fields.Bool(required=True)
    data = fields.Raw(allow_none=True)
    message = fields.Str(allow_none=True)
    error = fields.Str(allow_none=True)
    details = fields.Raw(allow_none=True)
