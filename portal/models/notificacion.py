from portal.models.base_model import BaseModel
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

class NotificacionModel(BaseModel):
    """Bandeja de notificaciones por usuario (`notificaciones`)."""

    def get_table_name(self) -> str:
        return 'notificaciones'

    def find_by_usuario(self, user_id, limit: int = 20, desde: Optional[str] = None) -> Dict:
        """
        Últimas notificaciones de un usuario, más recientes primero.
        `desde` limita a las creadas después de esa marca de tiempo.
        """
        filters = {'user_id': user_id}
        if desde:
            filters['created_at_gt'] = desde
        return self.find_all(filters=filters, order_by='created_at.desc', limit=limit)

    def count_no_leidas(self, user_id) -> Dict:
        return self.get_count({'user_id': user_id, 'leida': False})

    def mark_as_read(self, notificacion_id: int, user_id=None) -> Dict:
        """
        Marca una notificación como leída. Si se indica `user_id`, solo se
        actualiza cuando la notificación pertenece a ese usuario.
        """
        filters = {'id': notificacion_id}
        if user_id is not None:
            filters['user_id'] = user_id
        result = self.update_where(filters, {'leida': True})
        if result.get('success') and not result.get('data'):
            return {'success': False, 'error': 'Notificación no encontrada.'}
        return result

    def mark_all_as_read(self, user_id) -> Dict:
        return self.update_where({'user_id': user_id, 'leida': False}, {'leida': True})
