from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_session
from backend.app.schemas import CouponValidateRequest, CouponValidateResponse
from backend.app.core.logging import get_logger
from backend.app.services.coupons import CouponService, CouponServiceError

router = APIRouter()
logger = get_logger(__name__)


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    data: CouponValidateRequest,
    session: AsyncSession = Depends(get_session),
):
    """
    Check a coupon code against an order total without using it up.

    An unusable code is still a 200 response with `valid: false` and the
    reason in `message`.
    """
    try:
        check = await CouponService(session).validate(
            data.code,
            data.order_total,
            user_id=data.user_id,
            guest_email=data.guest_email,
        )
    except CouponServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not check.valid:
        logger.info("Coupon rejected", code=data.code, reason=check.message)
    return check.to_dict()
