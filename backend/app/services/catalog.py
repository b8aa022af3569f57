from decimal import Decimal
from typing import Optional

from app.db.store import DocumentStore
from app.models.template import Template


class TemplateCatalog:
    """Чтение каталога шаблонов (цены и категории)"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_template(self, template_id: int) -> Optional[Template]:
        template = self.store.get(Template, template_id)
        if not template or not template.is_active:
            return None
        return template

    def get_base_price(self, template_id: int) -> Optional[Decimal]:
        """Базовая цена шаблона или None, если шаблон недоступен"""
        template = self.get_template(template_id)
        return template.base_price if template else None

    def get_category_id(self, template_id: int) -> Optional[int]:
        template = self.get_template(template_id)
        return template.category_id if template else None

