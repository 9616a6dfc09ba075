from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4
from sqlalchemy import or_, update
from ..db.session import get_session
from ..errors import DiscountNotFound, DuplicateEntry
from ..models.discount import DISCOUNT_KINDS, Discount
from ..utils.clock import as_naive_utc, utcnow
from ..utils.dto import money, to_discount_dto
from ..utils.validators import normalize_code
from .logging import log_event


@dataclass(frozen=True)
class DiscountValidation:
    code: str
    accepted: bool
    amount: Decimal = Decimal("0")
    reason: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {"code": self.code, "accepted": self.accepted, "amount": money(self.amount)}
        if self.reason:
            data["reason"] = self.reason
        return data


def evaluate_discount(discount: Optional[Discount], code: str, subtotal, now: datetime) -> DiscountValidation:
    """Apply the acceptance rules of a discount row to ``subtotal`` at ``now``.

    Checks run in order: existence, active flag, validity window (both bounds
    inclusive), minimum order amount, usage limit. Percentage amounts are
    capped by ``max_discount_amount`` when it is set.
    """
    subtotal = Decimal(str(subtotal))
    if discount is None:
        return DiscountValidation(code=code, accepted=False, reason="not_found")
    if not discount.is_active:
        return DiscountValidation(code=code, accepted=False, reason="inactive")
    if now < discount.valid_from or now > discount.valid_until:
        return DiscountValidation(code=code, accepted=False, reason="expired")
    if subtotal < Decimal(str(discount.min_order_amount or 0)):
        return DiscountValidation(code=code, accepted=False, reason="minimum_not_met")
    if discount.usage_limit is not None and (discount.used_count or 0) >= discount.usage_limit:
        return DiscountValidation(code=code, accepted=False, reason="usage_limit_reached")

    value = Decimal(str(discount.value))
    if discount.kind == "percentage":
        amount = subtotal * value / Decimal("100")
        if discount.max_discount_amount is not None:
            amount = min(amount, Decimal(str(discount.max_discount_amount)))
    else:
        amount = value
    return DiscountValidation(code=code, accepted=True, amount=amount)


class DiscountService:
    """Discount code validation, usage accounting and administration."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def validate(self, code: str, subtotal, now: Optional[datetime] = None) -> DiscountValidation:
        with self._session_factory() as session:
            return self.validate_in(session, code, subtotal, now)

    @staticmethod
    def validate_in(session, code: str, subtotal, now: Optional[datetime] = None) -> DiscountValidation:
        normalized = normalize_code(code)
        now = as_naive_utc(now) if now is not None else utcnow()
        discount = session.query(Discount).filter(Discount.code == normalized).first() if normalized else None
        result = evaluate_discount(discount, normalized, subtotal, now)
        if not result.accepted:
            log_event("info", "discount.rejected", code=normalized, reason=result.reason)
        return result

    @staticmethod
    def redeem_in(session, code: str) -> bool:
        """Count one use of ``code``; False when the usage limit is already reached."""
        stmt = (
            update(Discount)
            .where(
                Discount.code == normalize_code(code),
                or_(Discount.usage_limit.is_(None), Discount.used_count < Discount.usage_limit),
            )
            .values(used_count=Discount.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        redeemed = session.execute(stmt).rowcount > 0
        if redeemed:
            log_event("info", "discount.redeemed", code=normalize_code(code))
        return redeemed

    @staticmethod
    def release_in(session, code: str) -> None:
        stmt = (
            update(Discount)
            .where(Discount.code == normalize_code(code), Discount.used_count > 0)
            .values(used_count=Discount.used_count - 1)
            .execution_options(synchronize_session=False)
        )
        if session.execute(stmt).rowcount:
            log_event("info", "discount.released", code=normalize_code(code))

    # --- administration ---

    def list_discounts(self, *, search: Optional[str] = None, active: Optional[bool] = None) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Discount)
            if search:
                q = q.filter(Discount.code.like(f"%{normalize_code(search)}%"))
            if active is not None:
                q = q.filter(Discount.is_active.is_(active))
            return [to_discount_dto(d) for d in q.order_by(Discount.created_at.desc()).all()]

    def get_discount(self, key: str) -> Dict:
        with self._session_factory() as session:
            d = (
                session.query(Discount)
                .filter(or_(Discount.id == key, Discount.code == normalize_code(key)))
                .first()
            )
            if d is None:
                raise DiscountNotFound(key)
            return to_discount_dto(d)

    def create_discount(
        self,
        *,
        code: str,
        kind: str,
        value,
        valid_from: datetime,
        valid_until: datetime,
        min_order_amount=0,
        max_discount_amount=None,
        usage_limit: Optional[int] = None,
        is_active: bool = True,
    ) -> Dict:
        normalized = normalize_code(code)
        if not normalized:
            raise ValueError("code required")
        discount = Discount(
            id=str(uuid4()),
            code=normalized,
            kind=kind,
            value=Decimal(str(value)),
            min_order_amount=Decimal(str(min_order_amount or 0)),
            max_discount_amount=Decimal(str(max_discount_amount)) if max_discount_amount is not None else None,
            usage_limit=usage_limit,
            used_count=0,
            valid_from=as_naive_utc(valid_from),
            valid_until=as_naive_utc(valid_until),
            is_active=bool(is_active),
        )
        self._check(discount)
        with self._session_factory() as session:
            if session.query(Discount).filter(Discount.code == normalized).first():
                raise DuplicateEntry("code", normalized)
            session.add(discount)
            session.flush()
            return to_discount_dto(discount)

    def update_discount(self, discount_id: str, **changes) -> Dict:
        with self._session_factory() as session:
            discount = session.get(Discount, discount_id)
            if discount is None:
                raise DiscountNotFound(discount_id)
            if changes.get("code") is not None:
                normalized = normalize_code(changes["code"])
                if normalized != discount.code:
                    if session.query(Discount).filter(Discount.code == normalized).first():
                        raise DuplicateEntry("code", normalized)
                    discount.code = normalized
            for field in ("kind", "usage_limit", "is_active"):
                if changes.get(field) is not None:
                    setattr(discount, field, changes[field])
            for field in ("value", "min_order_amount", "max_discount_amount"):
                if changes.get(field) is not None:
                    setattr(discount, field, Decimal(str(changes[field])))
            for field in ("valid_from", "valid_until"):
                if changes.get(field) is not None:
                    setattr(discount, field, as_naive_utc(changes[field]))
            self._check(discount)
            session.flush()
            return to_discount_dto(discount)

    def delete_discount(self, discount_id: str) -> None:
        with self._session_factory() as session:
            discount = session.get(Discount, discount_id)
            if discount is None:
                raise DiscountNotFound(discount_id)
            session.delete(discount)

    @staticmethod
    def _check(discount: Discount) -> None:
        if discount.kind not in DISCOUNT_KINDS:
            raise ValueError('kind must be either "percentage" or "fixed"')
        if Decimal(str(discount.value)) <= 0:
            raise ValueError("value must be > 0")
        if discount.valid_from >= discount.valid_until:
            raise ValueError("valid_from must be before valid_until")
        if discount.usage_limit is not None and discount.usage_limit < 0:
            raise ValueError("usage_limit must be >= 0")
