import json
from decimal import Decimal
from datetime import date, datetime
from flask.json.provider import DefaultJSONProvider

class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)

class CustomJSONProvider(DefaultJSONProvider):
    """Proveedor JSON de Flask que serializa Decimal y fechas de Supabase."""
    ensure_ascii = False

    @staticmethod
    def default(obj):
        return CustomJSONEncoder().default(obj)
