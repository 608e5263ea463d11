from marshmallow import Schema, fields, validate

class SolicitudSchema(Schema):
    """
    Schema para la creación de una solicitud (mantenimiento, compras u otra área).
    """
    area_id = fields.Int(required=True, error_messages={"required": "El área es obligatoria."})
    tipo_solicitud_id = fields.Int(required=True, error_messages={"required": "El tipo de solicitud es obligatorio."})
    prioridad_id = fields.Int(required=True, error_messages={"required": "La prioridad es obligatoria."})
    descripcion = fields.Str(required=True, validate=validate.Length(min=1, error="La descripción es obligatoria."))
    justificacion = fields.Str(load_default='', allow_none=True)

    id = fields.Int(dump_only=True)
    estado_id = fields.Int(dump_only=True)
    consecutivo = fields.Int(dump_only=True)


class CalificacionSchema(Schema):
    calificacion = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="Debes escribir una calificación."),
        error_messages={"required": "La calificación es obligatoria."}
    )
    comentario = fields.Str(load_default='', allow_none=True)


class GestionSolicitudSchema(Schema):
    """Comentario o detalle que acompaña un cambio de estado de compras, gerencia o mantenimiento."""
    comentario = fields.Str(load_default='', allow_none=True)
    accion_realizada = fields.Str(load_default='', allow_none=True)
