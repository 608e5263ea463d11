from portal.models.base_model import BaseModel
from typing import Dict, List

class UsuarioModel(BaseModel):
    """Perfiles internos (`usuarios`): usuario, correo, rol y área de trabajo."""

    def get_table_name(self) -> str:
        return 'usuarios'

    def find_by_usuario(self, usuario: str) -> Dict:
        return self.find_by_id(usuario, id_field='usuario')

    def find_by_correo(self, correo: str) -> Dict:
        return self.find_by_id(correo, id_field='correo')

    def find_ids_por_roles(self, roles: List[str]) -> Dict:
        """Ids de usuarios cuyo rol coincide exactamente con alguna de las variantes dadas."""
        if not roles:
            return {'success': True, 'data': []}
        return self.find_all(filters={'rol': ('in', roles)}, select_columns=['id', 'rol'])
