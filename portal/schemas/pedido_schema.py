from marshmallow import Schema, fields, validate, pre_load

PRIORIDADES_VALIDAS = ['Bajo', 'Medio', 'Alto', 'Muy Alto']


class PedidoSchema(Schema):
    """
    Schema para la validación del registro de un pedido de producción
    desde Atención al Cliente.
    """
    referencia = fields.Str(required=True, error_messages={"required": "El producto (referencia) es obligatorio."})
    cliente_id = fields.Int(required=True, error_messages={"required": "El cliente es obligatorio."})
    cantidad = fields.Int(
        required=True,
        validate=validate.Range(min=1, error="La cantidad debe ser un número entero mayor que cero."),
        error_messages={"invalid": "La cantidad debe ser un número entero válido."}
    )
    prioridad = fields.Str(load_default='Bajo', validate=validate.OneOf(PRIORIDADES_VALIDAS))
    observaciones = fields.Str(load_default='', allow_none=True)

    id = fields.Int(dump_only=True)
    estado_id = fields.Int(dump_only=True)
    asignado_a = fields.Str(dump_only=True)
    fecha_recepcion_cliente = fields.Date(dump_only=True)

    @pre_load
    def normalizar_referencia(self, data, **kwargs):
        if isinstance(data, dict) and data.get('referencia') is not None:
            data = dict(data)
            data['referencia'] = str(data['referencia']).strip()
        return data


class PedidoMasivoItemSchema(PedidoSchema):
    """Fila de la carga masiva ya revisada por el usuario, tal como la devuelve la previsualización."""
    fila = fields.Int(load_only=True, allow_none=True)
    encontrado = fields.Bool(load_default=False)
    articulo = fields.Str(allow_none=True)


class RegistroLoteSchema(Schema):
    """Datos del lote que Producción registra al pasar a asignación de fechas."""
    op = fields.Float(required=True, error_messages={"required": "La orden de producción (OP) es obligatoria."})
    lote = fields.Float(required=True, error_messages={"required": "El lote es obligatorio."})
    fecha_vencimiento = fields.Str(
        required=True,
        validate=validate.Regexp(r'^\d{4}-\d{2}$', error="La fecha de vencimiento debe tener el formato AAAA-MM."),
        error_messages={"required": "La fecha de vencimiento es obligatoria."}
    )
    tamano_lote = fields.Float(
        required=True,
        validate=validate.Range(min=0, min_inclusive=False, error="El tamaño de lote debe ser mayor que cero."),
        error_messages={"required": "El tamaño de lote es obligatorio."}
    )


class AsignarFechasSchema(Schema):
    fecha_propuesta_entrega = fields.Date(required=True, error_messages={"required": "La fecha propuesta de entrega es obligatoria."})


class MateriaPrimaItemSchema(Schema):
    referencia_materia_prima = fields.Raw(required=True)
    cantidad = fields.Float(required=True, validate=validate.Range(min=0, min_inclusive=False))
    es_critico = fields.Bool(load_default=True)


class SolicitudMateriasPrimasSchema(Schema):
    items = fields.List(fields.Nested(MateriaPrimaItemSchema), load_default=list)


class SolicitudMicrobiologiaSchema(Schema):
    """Solicitud de análisis que Producción envía a Microbiología."""
    tipo_solicitud_id = fields.Int(required=True, error_messages={"required": "El tipo de solicitud es obligatorio."})
    prioridad_id = fields.Int(required=True, error_messages={"required": "La prioridad es obligatoria."})
    descripcion = fields.Str(required=True, validate=validate.Length(min=1, error="La descripción es obligatoria."))
    justificacion = fields.Str(load_default='', allow_none=True)
    forma_manual = fields.Str(load_default=None, allow_none=True)


class FiltrosPedidoSchema(Schema):
    """Filtros de consulta para listados y consolidado."""
    texto = fields.Str(load_default=None, allow_none=True)
    estado_id = fields.Int(load_default=None, allow_none=True)
    asignado_a = fields.Str(load_default=None, allow_none=True)
    cliente_id = fields.Int(load_default=None, allow_none=True)
    referencia = fields.Str(load_default=None, allow_none=True)
    fecha_desde = fields.Date(load_default=None, allow_none=True)
    fecha_hasta = fields.Date(load_default=None, allow_none=True)
