from marshmallow import Schema, fields, validate

class LiberacionEtapaSchema(Schema):
    """Datos de la firma de liberación de una etapa por parte de CC o MB."""
    comentario = fields.Str(load_default='', allow_none=True)
    numero_analisis = fields.Str(load_default=None, allow_none=True)
    responsable_manual = fields.Str(load_default=None, allow_none=True)


class RechazoEtapaSchema(Schema):
    comentario = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="Debe indicar el motivo del rechazo."),
        error_messages={"required": "Debe indicar el motivo del rechazo."}
    )


class LiberacionPTSchema(Schema):
    """Liberación de producto terminado (Control de Calidad) o solicitud inicial (Microbiología)."""
    comentario = fields.Str(load_default='', allow_none=True)
    numero_analisis = fields.Str(load_default=None, allow_none=True)
    responsable = fields.Str(load_default=None, allow_none=True)
