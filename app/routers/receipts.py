"""
Payment receipt endpoints: JSON, printable HTML and staff delivery.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import HTMLResponse

from app.config import ARENA_NAME
from app.dependencies import CurrentUser, StaffUser
from app.models import Receipt, ReceiptSendResponse, UserInfo
from app.services.email import send_receipt_email, send_sms
from app.services.receipt import build_receipt, render_receipt_html, templates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["receipts"])


async def _visible_receipt(payment_id: int, user: UserInfo) -> Receipt:
    receipt, booking, _ = await build_receipt(payment_id)
    if booking.user_id != user.id and not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payment {payment_id} not found",
        )
    return receipt


@router.get(
    "/api/payments/{payment_id}/receipt",
    response_model=Receipt,
    operation_id="getReceipt",
    summary="Receipt data for a completed payment",
)
async def get_receipt(payment_id: int, current_user: CurrentUser) -> Receipt:
    return await _visible_receipt(payment_id, current_user)


@router.get(
    "/api/payments/{payment_id}/receipt/html",
    response_class=HTMLResponse,
    operation_id="getReceiptHtml",
    summary="Printable HTML receipt",
)
async def get_receipt_html(request: Request, payment_id: int, current_user: CurrentUser):
    receipt = await _visible_receipt(payment_id, current_user)
    return templates.TemplateResponse(
        request,
        "receipt.html",
        {"receipt": receipt, "arena_name": ARENA_NAME},
    )


@router.post(
    "/api/admin/payments/{payment_id}/receipt/send",
    response_model=ReceiptSendResponse,
    operation_id="sendReceipt",
    summary="Email and text the receipt to the customer",
)
async def send_receipt(payment_id: int, staff: StaffUser) -> ReceiptSendResponse:
    receipt, _, customer = await build_receipt(payment_id)

    email_sent = True
    try:
        await send_receipt_email(
            customer.email,
            customer.full_name,
            receipt.receipt_id,
            render_receipt_html(receipt),
        )
    except Exception:
        logger.warning("Receipt %s could not be emailed", receipt.receipt_id)
        email_sent = False

    sms_sent = False
    if customer.phone:
        await send_sms(customer.phone, receipt.sms_text)
        sms_sent = True

    return ReceiptSendResponse(
        receipt_id=receipt.receipt_id, email_sent=email_sent, sms_sent=sms_sent
    )
