from marshmallow import Schema, fields, validate, EXCLUDE

class ProductoSchema(Schema):
    """
    Ficha técnica de un producto creada por Dirección Técnica. Solo artículo y
    referencia son obligatorios; el resto de campos se guardan tal cual.
    """
    class Meta:
        unknown = EXCLUDE

    articulo = fields.Str(required=True, validate=validate.Length(min=1, error="El artículo es obligatorio."))
    referencia = fields.Str(required=True, validate=validate.Length(min=1, error="La referencia es obligatoria."))
    nombre_registro_lote = fields.Str(allow_none=True)
    forma_farmaceutica = fields.Str(allow_none=True)
    presentacion_comercial = fields.Str(allow_none=True)
    nombre_registro = fields.Str(allow_none=True)
    presentacion = fields.Str(allow_none=True)
    via_administracion = fields.Str(allow_none=True)
    tipo_envase = fields.Str(allow_none=True)
    tapa = fields.Str(allow_none=True)
    linnear = fields.Str(allow_none=True)
    gotero = fields.Str(allow_none=True)
    dosificador = fields.Str(allow_none=True)
    otro_accesorio = fields.Str(allow_none=True)
    aspecto_proceso = fields.Str(allow_none=True)
    color_proceso = fields.Str(allow_none=True)
    olor_proceso = fields.Str(allow_none=True)
    sabor_proceso = fields.Str(allow_none=True)
    ph_proceso_min = fields.Str(allow_none=True)
    ph_proceso_max = fields.Str(allow_none=True)
    densidad_proceso_min = fields.Str(allow_none=True)
    densidad_proceso_max = fields.Str(allow_none=True)
    grado_alcoholico_proceso = fields.Str(allow_none=True)
    aspecto_terminado = fields.Str(allow_none=True)
    color_terminado = fields.Str(allow_none=True)
    ph_terminado_min = fields.Str(allow_none=True)
    ph_terminado_max = fields.Str(allow_none=True)
    densidad_terminado_min = fields.Str(allow_none=True)
    densidad_terminado_max = fields.Str(allow_none=True)
    grado_alcoholico_terminado = fields.Str(allow_none=True)
    volumen_min = fields.Str(allow_none=True)
    volumen_max = fields.Str(allow_none=True)
    rtma_max = fields.Str(allow_none=True)
    rtchl_max = fields.Str(allow_none=True)
    ecoli = fields.Str(allow_none=True)
    elaborado_por = fields.Str(allow_none=True)
    fecha_elaborado = fields.Str(allow_none=True)
    aprobado_por = fields.Str(allow_none=True)
    fecha_aprobado = fields.Str(allow_none=True)


class TareaProduccionSchema(Schema):
    fecha = fields.Date(required=True, error_messages={"required": "La fecha es obligatoria."})
    titulo = fields.Str(required=True, validate=validate.Length(min=1, error="El título es obligatorio."))
    descripcion = fields.Str(load_default='', allow_none=True)
