# order_engine/api/errors.py
from fastapi import HTTPException

from order_engine.domain.errors import BusinessError, ErrorCode

_NOT_FOUND = {
    ErrorCode.ORDER_NOT_FOUND,
    ErrorCode.PRODUCT_NOT_FOUND,
    ErrorCode.CART_ITEM_NOT_FOUND,
}


def to_http_error(exc: Exception) -> HTTPException:
    """Błąd domenowy -> kod HTTP (404 / 422 / 500)."""
    if isinstance(exc, BusinessError):
        status = 404 if exc.code in _NOT_FOUND else 422
        return HTTPException(status_code=status, detail=exc.to_dict())

    # OrderSystemError - szczegóły zostają w logach
    return HTTPException(status_code=500, detail={"code": "SYSTEM_ERROR", "message": "Internal server error"})
