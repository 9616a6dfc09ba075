from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4
from sqlalchemy import func
from ..db.session import get_session
from ..errors import ShippingRuleNotFound
from ..models.shipping_rule import ShippingRule
from ..utils.clock import utcnow
from ..utils.dto import money, to_shipping_rule_dto
from ..utils.validators import is_pincode, validate_pincode_range
from .logging import log_event


@dataclass(frozen=True)
class ShippingQuote:
    rule_id: str
    state: str
    delivery_days: int
    shipping_charge: Decimal
    cod_available: bool

    def to_dict(self) -> Dict:
        return {
            "rule_id": self.rule_id,
            "state": self.state,
            "delivery_days": self.delivery_days,
            "shipping_charge": money(self.shipping_charge),
            "cod_available": self.cod_available,
        }


def _span(rule: ShippingRule) -> int:
    return int(rule.pincode_end) - int(rule.pincode_start)


class ShippingService:
    """Postal-code range lookup and shipping rule administration."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def resolve(self, pincode: str) -> Optional[ShippingQuote]:
        """Return the quote for ``pincode`` or None when no active rule covers it.

        Overlapping rules resolve to the narrowest range, then the newest rule.
        """
        with self._session_factory() as session:
            return self.resolve_in(session, pincode)

    @staticmethod
    def resolve_in(session, pincode: str) -> Optional[ShippingQuote]:
        pincode = (pincode or "").strip()
        if not is_pincode(pincode):
            return None
        candidates = (
            session.query(ShippingRule)
            .filter(
                ShippingRule.is_active.is_(True),
                func.length(ShippingRule.pincode_start) == len(pincode),
                ShippingRule.pincode_start <= pincode,
                ShippingRule.pincode_end >= pincode,
            )
            .order_by(ShippingRule.created_at.desc(), ShippingRule.id)
            .all()
        )
        if not candidates:
            log_event("info", "shipping.no_coverage", pincode=pincode)
            return None
        # min() keeps the first of equal spans, i.e. the newest
        rule = min(candidates, key=_span)
        return ShippingQuote(
            rule_id=rule.id,
            state=rule.state,
            delivery_days=rule.delivery_days,
            shipping_charge=Decimal(str(rule.shipping_charge)),
            cod_available=bool(rule.is_cod_available),
        )

    def list_rules(
        self,
        *,
        active: Optional[bool] = None,
        state: Optional[str] = None,
        cod: Optional[bool] = None,
        pincode: Optional[str] = None,
    ) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(ShippingRule)
            if active is not None:
                q = q.filter(ShippingRule.is_active.is_(active))
            if state:
                q = q.filter(ShippingRule.state == state)
            if cod is not None:
                q = q.filter(ShippingRule.is_cod_available.is_(cod))
            if pincode:
                q = q.filter(ShippingRule.pincode_start <= pincode, ShippingRule.pincode_end >= pincode)
            return [to_shipping_rule_dto(r) for r in q.order_by(ShippingRule.pincode_start).all()]

    def create_rule(
        self,
        *,
        pincode_start: str,
        pincode_end: str,
        state: str,
        delivery_days: int,
        shipping_charge,
        is_cod_available: bool = True,
        is_active: bool = True,
    ) -> Dict:
        pincode_start, pincode_end = pincode_start.strip(), pincode_end.strip()
        validate_pincode_range(pincode_start, pincode_end)
        if int(delivery_days) < 0:
            raise ValueError("delivery_days must be >= 0")
        if Decimal(str(shipping_charge)) < 0:
            raise ValueError("shipping_charge must be >= 0")
        with self._session_factory() as session:
            rule = ShippingRule(
                id=str(uuid4()),
                pincode_start=pincode_start,
                pincode_end=pincode_end,
                state=state.strip(),
                delivery_days=int(delivery_days),
                shipping_charge=Decimal(str(shipping_charge)),
                is_cod_available=bool(is_cod_available),
                is_active=bool(is_active),
                created_at=utcnow(),
            )
            session.add(rule)
            session.flush()
            return to_shipping_rule_dto(rule)

    def update_rule(self, rule_id: str, **changes) -> Dict:
        with self._session_factory() as session:
            rule = session.get(ShippingRule, rule_id)
            if rule is None:
                raise ShippingRuleNotFound(rule_id)
            start = (changes.get("pincode_start") or rule.pincode_start).strip()
            end = (changes.get("pincode_end") or rule.pincode_end).strip()
            validate_pincode_range(start, end)
            rule.pincode_start, rule.pincode_end = start, end
            for field in ("state", "delivery_days", "is_cod_available", "is_active"):
                if changes.get(field) is not None:
                    setattr(rule, field, changes[field])
            if changes.get("shipping_charge") is not None:
                charge = Decimal(str(changes["shipping_charge"]))
                if charge < 0:
                    raise ValueError("shipping_charge must be >= 0")
                rule.shipping_charge = charge
            session.flush()
            return to_shipping_rule_dto(rule)

    def delete_rule(self, rule_id: str) -> None:
        with self._session_factory() as session:
            rule = session.get(ShippingRule, rule_id)
            if rule is None:
                raise ShippingRuleNotFound(rule_id)
            session.delete(rule)
