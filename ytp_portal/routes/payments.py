import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import require_role
from ..database import get_db
from ..models import Matter, Payment, PaymentStatus, User, UserRole
from ..schemas import PaymentCreate
from ..utils.serialization import naive_utc, to_millis

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["payments"])

payment_roles = require_role(UserRole.ADMIN, UserRole.LAWYER, UserRole.STAFF)

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100


def serialize_payment(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "matter_id": payment.matter_id,
        "payment_type": payment.payment_type,
        "amount": payment.amount,
        "payment_method": payment.payment_method,
        "lawpay_transaction_id": payment.lawpay_transaction_id,
        "status": payment.status,
        "fund_source": payment.fund_source,
        "invoice_id": payment.invoice_id,
        "check_number": payment.check_number,
        "reference_number": payment.reference_number,
        "paid_at": to_millis(payment.paid_at),
        "notes": payment.notes,
        "recorded_by": payment.recorded_by,
        "created_at": to_millis(payment.created_at),
        "updated_at": to_millis(payment.updated_at),
    }


@router.get("")
def list_payments(
    matterId: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    current_user: User = Depends(payment_roles),
    db: Session = Depends(get_db),
):
    page = max(page, 1)
    limit = min(limit if limit > 0 else DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)

    query = db.query(Payment, Matter, User).join(Matter, Payment.matter_id == Matter.id).outerjoin(
        User, Matter.client_id == User.id
    )
    if matterId:
        query = query.filter(Payment.matter_id == matterId)
    if status:
        query = query.filter(Payment.status == status)

    total_count = query.count()
    total_pages = math.ceil(total_count / limit)

    rows = (
        query.order_by(Payment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    payments = [
        {
            **serialize_payment(payment),
            "matter_title": matter.title,
            "client_id": matter.client_id,
            "client_name": (client.full_name if client else "") or "Unknown",
        }
        for payment, matter, client in rows
    ]

    return {
        "payments": payments,
        "pagination": {
            "page": page,
            "limit": limit,
            "total_count": total_count,
            "total_pages": total_pages,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


@router.post("")
def record_payment(
    body: PaymentCreate,
    current_user: User = Depends(payment_roles),
    db: Session = Depends(get_db),
):
    """Record a payment received outside LawPay (check, wire, ...) against a matter"""
    matter = db.query(Matter).filter(Matter.id == body.matter_id).first()
    if not matter:
        raise HTTPException(status_code=404, detail="Matter not found")

    payment = Payment(
        matter_id=matter.id,
        payment_type=body.payment_type,
        amount=body.amount,
        payment_method=body.payment_method,
        status=PaymentStatus.COMPLETED.value,
        fund_source="DIRECT",
        invoice_id=body.invoice_id or None,
        check_number=body.check_number or None,
        reference_number=body.reference_number or None,
        notes=body.notes or None,
        paid_at=naive_utc(body.paid_at) or datetime.utcnow(),
        recorded_by=current_user.id,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    logger.info(f"💵 Payment {payment.id} of {payment.amount} cents recorded on matter {matter.id}")
    return {"success": True, "payment": serialize_payment(payment)}
