from datetime import datetime, date, timedelta
from typing import Optional, Union
import pytz
from dateutil import parser as date_parser

DEFAULT_TZ = 'America/Bogota'

def _zona(tz_name: Optional[str] = None):
    if tz_name is None:
        try:
            from flask import current_app
            tz_name = current_app.config.get('TIMEZONE', DEFAULT_TZ)
        except RuntimeError:
            tz_name = DEFAULT_TZ
    return pytz.timezone(tz_name)

def get_now_local(tz_name: Optional[str] = None) -> datetime:
    """
    Devuelve el objeto datetime actual para la zona horaria de la planta.
    """
    return datetime.now(_zona(tz_name))

def get_today_local(tz_name: Optional[str] = None) -> date:
    return get_now_local(tz_name).date()

def parse_fecha(valor: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Convierte un valor de fecha proveniente de la base de datos (string ISO,
    date o datetime) a datetime. Devuelve None si no se puede interpretar.
    """
    if valor is None or valor == '':
        return None
    if isinstance(valor, datetime):
        return valor
    if isinstance(valor, date):
        return datetime.combine(valor, datetime.min.time())
    try:
        return date_parser.parse(str(valor))
    except (ValueError, OverflowError, TypeError):
        return None

def _sin_zona(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(pytz.utc).replace(tzinfo=None)
    return dt

def diferencia_dias(inicio, fin) -> Optional[int]:
    """
    Diferencia redondeada en días entre dos fechas. None si falta alguna.
    """
    dt_inicio = parse_fecha(inicio)
    dt_fin = parse_fecha(fin)
    if dt_inicio is None or dt_fin is None:
        return None
    segundos = (_sin_zona(dt_fin) - _sin_zona(dt_inicio)).total_seconds()
    return int(round(segundos / 86400))

def sumar_dias_habiles(dias: int, desde: Optional[date] = None) -> date:
    """
    Suma `dias` días hábiles (lunes a viernes) a la fecha `desde`.
    Los fines de semana no cuentan; los festivos no se consideran.
    """
    actual = desde or get_today_local()
    if isinstance(actual, datetime):
        actual = actual.date()
    agregados = 0
    while agregados < dias:
        actual += timedelta(days=1)
        if actual.weekday() < 5:
            agregados += 1
    return actual

def rango_mes(year: int, month: int):
    """Primer y último día del mes indicado."""
    inicio = date(year, month, 1)
    if month == 12:
        fin = date(year + 1, 1, 1) - timedelta(days=1)
    else:
        fin = date(year, month + 1, 1) - timedelta(days=1)
    return inicio, fin

def format_datetime_local(datetime_str: str) -> str:
    """
    Convierte un string de fecha y hora (potencialmente UTC) a la zona horaria
    local y lo formatea.
    """
    if not datetime_str:
        return ""
    dt = parse_fecha(datetime_str)
    if dt is None:
        return datetime_str
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(_zona()).strftime('%d/%m/%Y %H:%M:%S')
