from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple
from uuid import uuid4
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from ..db.session import get_session
from ..errors import (
    CodUnavailable,
    InvalidDiscount,
    InvalidTransition,
    NoShippingCoverage,
    OrderNotDeletable,
    OrderNotFound,
    PartialCheckoutFailure,
    SequenceCollision,
    StorefrontError,
)
from ..models.cart_item import CartItem
from ..models.order import Order, OrderItem
from ..schemas import CheckoutRequest
from ..utils.clock import as_naive_utc, utcnow
from ..utils.dto import to_order_dto
from ..utils.pagination import normalize_paging
from .cart_service import CartService
from .discount_service import DiscountService, DiscountValidation
from .logging import log_event
from .order_numbers import OrderNumberGenerator
from .pricing import DEFAULT_TAX_RATE, PriceBreakdown, PricedLine, cart_subtotal, compute_breakdown
from .shipping_service import ShippingQuote, ShippingService


class CheckoutStage(str, Enum):
    START = "start"
    PRICING_COMPUTED = "pricing_computed"
    ORDER_PERSISTED = "order_persisted"
    LINE_ITEMS_PERSISTED = "line_items_persisted"
    CART_CLEARED = "cart_cleared"
    DONE = "done"


STATUS_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

PAYMENT_TRANSITIONS = {
    "pending": {"paid", "failed"},
    "failed": {"pending", "paid"},
    "paid": {"refunded"},
    "refunded": set(),
}

DELETABLE_STATUSES = {"pending", "cancelled"}


def _is_order_number_collision(exc: IntegrityError) -> bool:
    return "order_number" in str(exc.orig).lower()


class OrderService:
    """Checkout orchestration and order lifecycle backed by DB."""

    def __init__(
        self,
        session_factory=get_session,
        *,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        currency: str = "INR",
        max_attempts: int = 3,
        number_generator: Optional[OrderNumberGenerator] = None,
        clock=utcnow,
    ):
        self._session_factory = session_factory
        self._tax_rate = Decimal(str(tax_rate))
        self._currency = currency
        self._max_attempts = max_attempts
        self._numbers = number_generator or OrderNumberGenerator()
        self._clock = clock

    def reconfigure(self, *, tax_rate=None, currency: Optional[str] = None) -> None:
        if tax_rate is not None:
            self._tax_rate = Decimal(str(tax_rate))
        if currency:
            self._currency = currency

    def _now(self, now: Optional[datetime]) -> datetime:
        return as_naive_utc(now) if now is not None else self._clock()

    def _price(
        self, session, request: CheckoutRequest, now: datetime
    ) -> Tuple[List[PricedLine], ShippingQuote, Optional[DiscountValidation], PriceBreakdown]:
        lines = CartService.priced_lines_in(session, request.user_id)
        subtotal = cart_subtotal(lines)
        shipping = ShippingService.resolve_in(session, request.pincode)
        if shipping is None:
            raise NoShippingCoverage(request.pincode)
        if request.payment_method == "cod" and not shipping.cod_available:
            raise CodUnavailable(request.pincode)
        discount = None
        if request.discount_code:
            discount = DiscountService.validate_in(session, request.discount_code, subtotal, now)
            if not discount.accepted:
                raise InvalidDiscount(discount.code, discount.reason)
        breakdown = compute_breakdown(lines, shipping, discount, self._tax_rate)
        return lines, shipping, discount, breakdown

    def preview(self, request: CheckoutRequest, now: Optional[datetime] = None) -> Dict:
        """Price the cart for ``request`` without persisting anything."""
        with self._session_factory() as session:
            lines, shipping, discount, breakdown = self._price(session, request, self._now(now))
            return {
                "items": [line.to_dict() for line in lines],
                "shipping": shipping.to_dict(),
                "discount": discount.to_dict() if discount else None,
                "breakdown": breakdown.to_dict(),
                "currency": self._currency,
            }

    def place_order(self, request: CheckoutRequest, now: Optional[datetime] = None) -> Dict:
        """Turn the user's cart into an order.

        Pricing, order row, order items, discount redemption and cart clearing
        run in one transaction. A collision on the order number restarts the
        transaction, up to ``max_attempts`` times.
        """
        now = self._now(now)
        order_number: Optional[str] = None
        snapshot: List[Dict] = []
        for attempt in range(1, self._max_attempts + 1):
            stage = CheckoutStage.START
            try:
                with self._session_factory() as session:
                    lines, shipping, discount, breakdown = self._price(session, request, now)
                    snapshot = [line.to_dict() for line in lines]
                    stage = CheckoutStage.PRICING_COMPUTED

                    order_number = self._numbers.next_number(session, now.year)
                    order = self._new_order(request, order_number, breakdown, discount, now)
                    session.add(order)
                    session.flush()
                    stage = CheckoutStage.ORDER_PERSISTED

                    for line in lines:
                        order.items.append(
                            OrderItem(
                                id=str(uuid4()),
                                product_id=line.product_id,
                                variant_id=line.variant_id,
                                product_name=line.product_name,
                                variant_name=line.variant_name,
                                quantity=line.quantity,
                                unit_price=line.unit_price,
                                total_price=line.line_total,
                                created_at=now,
                            )
                        )
                    session.flush()
                    stage = CheckoutStage.LINE_ITEMS_PERSISTED

                    if discount is not None and not DiscountService.redeem_in(session, discount.code):
                        raise InvalidDiscount(discount.code, "usage_limit_reached")
                    (
                        session.query(CartItem)
                        .filter(CartItem.id.in_([line.cart_item_id for line in lines]))
                        .delete(synchronize_session=False)
                    )
                    session.flush()
                    stage = CheckoutStage.CART_CLEARED
                    result = to_order_dto(order)
            except StorefrontError as exc:
                log_event("info", "order.checkout_rejected", user_id=request.user_id, code=exc.code, reason=str(exc))
                raise
            except IntegrityError as exc:
                if stage == CheckoutStage.PRICING_COMPUTED and _is_order_number_collision(exc):
                    log_event(
                        "warning",
                        "order.number_collision",
                        order_number=order_number,
                        attempt=attempt,
                        user_id=request.user_id,
                        cart_snapshot=snapshot,
                    )
                    continue
                self._log_failure(request, stage, order_number, snapshot, exc)
                raise PartialCheckoutFailure(stage.value, order_number, snapshot) from exc
            except SQLAlchemyError as exc:
                self._log_failure(request, stage, order_number, snapshot, exc)
                raise PartialCheckoutFailure(stage.value, order_number, snapshot) from exc

            log_event(
                "info",
                "order.created",
                order_number=order_number,
                user_id=request.user_id,
                items=len(snapshot),
                total=result["total_amount"],
                stage=CheckoutStage.DONE.value,
            )
            return result
        log_event(
            "error",
            "order.checkout_failed",
            stage=CheckoutStage.PRICING_COMPUTED.value,
            order_number=order_number,
            user_id=request.user_id,
            cart_snapshot=snapshot,
            error="order number collisions exhausted",
        )
        raise SequenceCollision(self._max_attempts, order_number, snapshot)

    @staticmethod
    def _log_failure(request: CheckoutRequest, stage: CheckoutStage, order_number, snapshot, exc) -> None:
        log_event(
            "error",
            "order.checkout_failed",
            stage=stage.value,
            order_number=order_number,
            user_id=request.user_id,
            cart_snapshot=snapshot,
            error=str(exc),
        )

    def _new_order(
        self,
        request: CheckoutRequest,
        order_number: str,
        breakdown: PriceBreakdown,
        discount: Optional[DiscountValidation],
        now: datetime,
    ) -> Order:
        shipping_address = request.shipping_address.model_dump()
        billing = request.billing_address
        return Order(
            id=str(uuid4()),
            user_id=request.user_id,
            order_number=order_number,
            status="pending",
            payment_status="pending",
            payment_method=request.payment_method,
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.discount_amount,
            discount_code=discount.code if discount else None,
            shipping_charge=breakdown.shipping_charge,
            tax_amount=breakdown.tax_amount,
            total_amount=breakdown.total_amount,
            currency=self._currency,
            shipping_address=shipping_address,
            billing_address=billing.model_dump() if billing else shipping_address,
            pincode=request.pincode,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _find(session, key: str) -> Order:
        o = session.query(Order).filter(or_(Order.order_number == key, Order.id == key)).first()
        if o is None:
            raise OrderNotFound(key)
        return o

    def get_order(self, key: str) -> Dict:
        with self._session_factory() as session:
            return to_order_dto(self._find(session, key))

    def list_orders(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        p, ps, offset = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(Order)
            if user_id:
                q = q.filter(Order.user_id == user_id)
            if status:
                q = q.filter(Order.status == status)
            if payment_status:
                q = q.filter(Order.payment_status == payment_status)
            if start:
                q = q.filter(Order.created_at >= as_naive_utc(start))
            if end:
                q = q.filter(Order.created_at <= as_naive_utc(end))
            if search:
                like = f"%{search}%"
                q = q.filter(
                    or_(
                        Order.order_number.like(like),
                        Order.customer_name.ilike(like),
                        Order.customer_email.ilike(like),
                        Order.customer_phone.like(like),
                    )
                )
            total = q.count()
            rows = q.order_by(Order.created_at.desc(), Order.order_number.desc()).offset(offset).limit(ps).all()
            return {
                "items": [to_order_dto(r, include_items=False) for r in rows],
                "page": p,
                "page_size": ps,
                "total": total,
            }

    def update_status(self, key: str, *, status: Optional[str] = None, payment_status: Optional[str] = None) -> Dict:
        with self._session_factory() as session:
            o = self._find(session, key)
            if status and status != o.status:
                if status not in STATUS_TRANSITIONS.get(o.status, set()):
                    raise InvalidTransition("status", o.status, status)
                if status == "cancelled" and o.discount_code:
                    DiscountService.release_in(session, o.discount_code)
                log_event("info", "order.status_changed", order_number=o.order_number, old=o.status, new=status)
                o.status = status
            if payment_status and payment_status != o.payment_status:
                if payment_status not in PAYMENT_TRANSITIONS.get(o.payment_status, set()):
                    raise InvalidTransition("payment_status", o.payment_status, payment_status)
                log_event(
                    "info",
                    "order.payment_status_changed",
                    order_number=o.order_number,
                    old=o.payment_status,
                    new=payment_status,
                )
                o.payment_status = payment_status
            o.updated_at = self._clock()
            session.flush()
            return to_order_dto(o)

    def delete_order(self, key: str) -> Dict:
        with self._session_factory() as session:
            o = self._find(session, key)
            if o.status not in DELETABLE_STATUSES:
                raise OrderNotDeletable(o.order_number, o.status)
            if o.status == "pending" and o.discount_code:
                DiscountService.release_in(session, o.discount_code)
            dto = to_order_dto(o)
            session.delete(o)
            log_event("info", "order.deleted", order_number=o.order_number)
            return dto
