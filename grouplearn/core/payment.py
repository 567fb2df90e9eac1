"""
Payment collection during the funding window.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from grouplearn.core.errors import Forbidden, InvalidTransition, ValidationError
from grouplearn.core.intents import NotificationIntent, notify_all
from grouplearn.core.request import GroupRequestData, PaymentRecord, RequestStatus
from grouplearn.core.uuid import UUID

Step = tuple[GroupRequestData, list[NotificationIntent]]


def amount_due(request: GroupRequestData) -> Decimal:
    """
    The total expected from all participants at the request's rate.
    """
    return request.rate * len(request.participants)


def outstanding_participants(request: GroupRequestData) -> frozenset[UUID]:
    return request.participants - request.paid_participants


def is_fully_paid(request: GroupRequestData) -> bool:
    return len(request.paid_participants) >= len(request.participants)


def is_expired(request: GroupRequestData, now: datetime) -> bool:
    return (
        request.status == RequestStatus.FUNDING
        and request.payment_deadline is not None
        and now >= request.payment_deadline
    )


MONEY_PLACES = 2


def has_money_precision(amount: Decimal) -> bool:
    """
    Whether `amount` fits the stored precision of money columns.
    """
    return amount.as_tuple().exponent >= -MONEY_PLACES


def _payment_id(request: GroupRequestData, user_id: UUID) -> str:
    # Without a provider key every payment is distinct.
    return f"{user_id}:{len(request.payments)}"


def record_payment(
    request: GroupRequestData,
    actor_id: UUID,
    user_id: UUID,
    amount: Decimal,
    payment_id: str | None,
    session_lead_time: timedelta,
    now: datetime,
    system_actor_id: UUID | None = None,
) -> Step:
    """
    Record a payment of `amount` made by `user_id`. Only the payer may report
    their own payment, unless `actor_id` is `system_actor_id` (a payment
    provider callback). Re-delivery of a payment with a known `payment_id` is
    a no-op. Once every participant has paid the request moves to
    `payment_complete` and the session is scheduled `session_lead_time` from
    now.
    """
    if request.status != RequestStatus.FUNDING:
        raise InvalidTransition("This request is not collecting payments.")

    if amount is None or not amount.is_finite() or amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")

    if not has_money_precision(amount):
        raise ValidationError(
            f"Payment amount cannot have more than {MONEY_PLACES} decimal places."
        )

    if user_id not in request.participants:
        raise Forbidden("Only participants of this request can pay for it.")

    if actor_id not in {user_id, system_actor_id}:
        raise Forbidden("You can only record your own payments.")

    if payment_id is not None and any(
        p.payment_id == payment_id for p in request.payments
    ):
        return request, []

    record = PaymentRecord(
        payment_id=payment_id or _payment_id(request, user_id),
        user_id=user_id,
        amount=amount,
        paid_at=now,
    )

    request = request.model_copy(
        update={
            "payments": request.payments + (record,),
            "paid_participants": request.paid_participants | {user_id},
            "total_paid": request.total_paid + amount,
            "updated_at": now,
        }
    )

    intents = notify_all(
        [request.creator_id],
        "payment_received",
        request_id=str(request.request_id),
        user_id=str(user_id),
        amount=str(amount),
        total_paid=str(request.total_paid),
    )

    if is_fully_paid(request):
        request = request.model_copy(
            update={
                "status": RequestStatus.PAYMENT_COMPLETE,
                "payment_deadline": None,
                "payment_completed_at": now,
                "scheduled_date_time": now + session_lead_time,
            }
        )

        recipients = set(request.participants)
        if request.selected_teacher_id is not None:
            recipients.add(request.selected_teacher_id)

        intents += notify_all(
            recipients,
            "payment_complete",
            request_id=str(request.request_id),
            scheduled_date_time=request.scheduled_date_time.isoformat(),
        )

    return request, intents


def expire(request: GroupRequestData, now: datetime) -> Step:
    """
    Close the funding window once the deadline has passed. Callers must check
    `is_expired` first; anything else is not an expiry.
    """
    request = request.model_copy(
        update={
            "status": RequestStatus.PAID,
            "payment_deadline": None,
            "payment_expired_at": now,
            "updated_at": now,
        }
    )

    return request, notify_all(
        request.participants,
        "payment_expired",
        request_id=str(request.request_id),
        paid_count=request.paid_count,
        total_paid=str(request.total_paid),
    )
