from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_session, get_effect_runner
from backend.app.schemas import OrderCreate, OrderResponse
from backend.app.core.exceptions import ServiceError
from backend.app.core.limiter import limiter
from backend.app.core.logging import get_logger, bind_request_context, clear_request_context
from backend.app.core.settings import get_settings
from backend.app.services.order_effects import BackgroundEffectRunner
from backend.app.services.orders import OrderService

router = APIRouter()
logger = get_logger(__name__)


def _handle_service_error(e: ServiceError):
    """Convert service exceptions to HTTP exceptions."""
    raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=OrderResponse, status_code=201)
@limiter.limit(get_settings().ORDER_CREATE_RATE_LIMIT)
async def create_order(
    request: Request,
    data: OrderCreate,
    session: AsyncSession = Depends(get_session),
    runner: BackgroundEffectRunner = Depends(get_effect_runner),
):
    """
    Place an order: price the cart, allocate a vendor, persist the order.

    The order is committed before any post-creation effect starts; those run
    in the background and cannot fail the request.
    """
    bind_request_context(user_id=data.user_id, delivery_slot=data.delivery_slot)
    service = OrderService(session)
    try:
        created = await service.create_order(data)
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        logger.info("Order rejected", status_code=e.status_code, reason=e.message)
        _handle_service_error(e)
    except Exception as e:
        await session.rollback()
        logger.error("Order creation failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create order")
    finally:
        clear_request_context()

    runner.submit(created.order.order_number, created.effects)

    # The order is committed; a failed read-back must not turn it into an error
    try:
        return await service.get_order(created.order.id)
    except Exception as e:
        logger.warning(
            "Order read-back failed, answering from the created rows",
            order_number=created.order.order_number,
            error=str(e),
        )
        return service.order_body(created.order, created.items)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Order with its items, status history and surcharge breakdown."""
    try:
        return await OrderService(session).get_order(order_id)
    except ServiceError as e:
        _handle_service_error(e)
