"""
Жизненный цикл заявки на кастомную мебель.

    pending ──> in_progress ──> samples_sent ──> approved ──> in_cart
       ^                            │
       └──── запрос правок ─────────┘

Из любого не финального статуса: completed / cancelled.

Все переходы описаны в TRANSITIONS; каждая запись в хранилище — условное
обновление с предусловием на (status, version), прочитанные перед операцией.
"""
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlmodel import SQLModel

from app.core.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from app.core.security import can_view, is_owner
from app.core.utils import clean_modifications, describe_modifications, money, utc_now
from app.db.store import DocumentStore
from app.models.cart import CartItem
from app.models.custom_request import CustomRequest, RequestStatus, TERMINAL_STATUSES
from app.services.catalog import TemplateCatalog


class Action(str, Enum):
    START_WORK = "start_work"
    ATTACH_SAMPLES = "attach_samples"
    SELECT_SAMPLE = "select_sample"
    REQUEST_ADJUSTMENT = "request_adjustment"
    CONVERT_TO_CART = "convert_to_cart"
    COMPLETE = "complete"
    CANCEL = "cancel"


ACTIVE_STATUSES = frozenset(status for status in RequestStatus if status not in TERMINAL_STATUSES)

# действие -> (из каких статусов, в какой)
TRANSITIONS: Dict[Action, Tuple[FrozenSet[RequestStatus], RequestStatus]] = {
    Action.START_WORK: (frozenset({RequestStatus.PENDING}), RequestStatus.IN_PROGRESS),
    Action.ATTACH_SAMPLES: (
        frozenset({RequestStatus.PENDING, RequestStatus.IN_PROGRESS}),
        RequestStatus.SAMPLES_SENT,
    ),
    Action.SELECT_SAMPLE: (frozenset({RequestStatus.SAMPLES_SENT}), RequestStatus.APPROVED),
    Action.REQUEST_ADJUSTMENT: (frozenset({RequestStatus.SAMPLES_SENT}), RequestStatus.PENDING),
    Action.CONVERT_TO_CART: (frozenset({RequestStatus.APPROVED}), RequestStatus.IN_CART),
    Action.COMPLETE: (ACTIVE_STATUSES, RequestStatus.COMPLETED),
    Action.CANCEL: (ACTIVE_STATUSES, RequestStatus.CANCELLED),
}


def next_status(current: RequestStatus, action: Action) -> RequestStatus:
    allowed, target = TRANSITIONS[action]
    if current not in allowed:
        raise InvalidTransition(
            f"Cannot {action.value.replace('_', ' ')} a request in status '{current.value}'"
        )
    return target


def _check_email(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise ValidationError("Email is required")
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email: {exc}") from exc


class CustomRequestLifecycle:

    def __init__(
        self,
        store: DocumentStore,
        catalog: TemplateCatalog,
        ownership: Callable[[Optional[str], Optional[str]], bool] = is_owner,
        clock: Callable = utc_now,
    ):
        self.store = store
        self.catalog = catalog
        self.is_owner = ownership
        self.clock = clock

    # === Чтение ===

    def get(self, request_id: str, viewer_id: Optional[str] = None, viewer_role: Optional[str] = None) -> CustomRequest:
        """Заявка для владельца или админа"""
        request = self._load(request_id)
        if not can_view(viewer_id, viewer_role, request.customer_id):
            raise Forbidden("Access denied")
        return request

    def list_for_customer(self, customer_id: str) -> List[CustomRequest]:
        return self.store.find(
            CustomRequest,
            order_by=CustomRequest.created_at.desc(),
            customer_id=customer_id,
        )

    def list_all(self, status: Optional[RequestStatus] = None) -> List[CustomRequest]:
        criteria = {"status": status} if status else {}
        return self.store.find(CustomRequest, order_by=CustomRequest.created_at.desc(), **criteria)

    # === Клиент ===

    def create(
        self,
        customer_id: str,
        template_id: Optional[int],
        modifications: Optional[Mapping[str, Optional[str]]],
        contact_email: Optional[str],
        contact_phone: Optional[str] = None,
        template_name: Optional[str] = None,
        additional_notes: Optional[str] = None,
        reference_images: Optional[Iterable[str]] = None,
    ) -> CustomRequest:
        if not customer_id:
            raise ValidationError("Customer is required")
        if template_id is None:
            raise ValidationError("Template ID is required")

        cleaned = clean_modifications(modifications)
        if not cleaned:
            raise ValidationError("At least one modification is required")

        email = _check_email(contact_email)

        if not template_name:
            template = self.catalog.get_template(template_id)
            template_name = template.name if template else "Unknown Template"

        now = self.clock()
        request = CustomRequest(
            template_id=template_id,
            template_name=template_name,
            customer_id=customer_id,
            contact_email=email,
            contact_phone=(contact_phone or "").strip() or None,
            modifications=cleaned,
            additional_notes=(additional_notes or "").strip() or None,
            reference_images=[ref for ref in (reference_images or []) if ref],
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        return self.store.create(request)

    def select_sample(self, request_id: str, customer_id: str, sample: str) -> CustomRequest:
        request = self._load(request_id)
        self._require_owner(request, customer_id)
        next_status(request.status, Action.SELECT_SAMPLE)

        if sample not in request.samples:
            raise ValidationError("Selected sample is not part of the current sample batch")

        return self._commit(request, Action.SELECT_SAMPLE, {"selected_sample": sample})

    def request_adjustment(
        self,
        request_id: str,
        customer_id: str,
        modifications: Optional[Mapping[str, Optional[str]]] = None,
        description: Optional[str] = None,
    ) -> CustomRequest:
        request = self._load(request_id)
        self._require_owner(request, customer_id)
        next_status(request.status, Action.REQUEST_ADJUSTMENT)

        cleaned = clean_modifications(modifications)
        description = (description or "").strip()
        if not cleaned and not description:
            raise ValidationError("Specify at least one adjustment or provide a description")

        entry = {
            "requested_at": self.clock().isoformat(),
            "modifications": cleaned,
            "description": description or describe_modifications(cleaned),
        }
        history = list(request.adjustment_requests or []) + [entry]
        return self._commit(request, Action.REQUEST_ADJUSTMENT, {"adjustment_requests": history})

    def convert_to_cart_item(self, request_id: str, customer_id: str) -> CartItem:
        """
        Одобренная заявка -> позиция корзины.
        Цена берётся из шаблона в момент конвертации (0, если шаблона нет)
        и дальше не меняется.
        """
        request = self._load(request_id)
        self._require_owner(request, customer_id)
        next_status(request.status, Action.CONVERT_TO_CART)

        base_price = self.catalog.get_base_price(request.template_id)
        item = CartItem(
            customer_id=request.customer_id,
            template_id=request.template_id,
            name=f"Custom {request.template_name}",
            image=request.selected_sample,
            customizations=dict(request.modifications or {}),
            price=money(base_price if base_price is not None else Decimal("0")),
            quantity=1,
            custom_request_id=request.id,
            is_custom_request=True,
        )
        self._commit(request, Action.CONVERT_TO_CART, {}, create_with=[item])
        return item

    # === Исполнитель / админ ===

    def start_work(self, request_id: str, actor_id: str) -> CustomRequest:
        request = self._load(request_id)
        return self._commit(request, Action.START_WORK, {"fulfilled_by": actor_id})

    def attach_samples(
        self,
        request_id: str,
        actor_id: str,
        samples: Sequence[str],
        admin_notes: Optional[str] = None,
    ) -> CustomRequest:
        """Новая партия образцов целиком заменяет предыдущую"""
        batch = [sample.strip() for sample in samples if sample and sample.strip()]
        request = self._load(request_id)
        next_status(request.status, Action.ATTACH_SAMPLES)
        if not batch:
            raise ValidationError("At least one sample is required")

        values = {"samples": batch, "selected_sample": None, "fulfilled_by": actor_id}
        if admin_notes is not None:
            values["admin_notes"] = admin_notes
        return self._commit(request, Action.ATTACH_SAMPLES, values)

    def mark_completed(self, request_id: str) -> CustomRequest:
        request = self._load(request_id)
        return self._commit(request, Action.COMPLETE, {})

    def cancel(self, request_id: str, actor_id: str, as_admin: bool = False) -> CustomRequest:
        request = self._load(request_id)
        if not as_admin:
            self._require_owner(request, actor_id)
        was_in_cart = request.status == RequestStatus.IN_CART
        request = self._commit(request, Action.CANCEL, {})
        if was_in_cart:
            self.store.delete(CartItem, custom_request_id=request.id)
        return request

    # === Внутреннее ===

    def _load(self, request_id: str) -> CustomRequest:
        request = self.store.get(CustomRequest, request_id)
        if not request:
            raise NotFound("Custom request not found")
        return request

    def _require_owner(self, request: CustomRequest, customer_id: str) -> None:
        if not self.is_owner(customer_id, request.customer_id):
            raise Forbidden("Access denied")

    def _commit(
        self,
        request: CustomRequest,
        action: Action,
        values: Mapping,
        create_with: Sequence[SQLModel] = (),
    ) -> CustomRequest:
        target = next_status(request.status, action)
        return self.store.conditional_update(
            CustomRequest,
            request.id,
            expected={"status": request.status, "version": request.version},
            values={**values, "status": target, "version": request.version + 1},
            create_with=create_with,
        )

