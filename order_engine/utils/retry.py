# order_engine/utils/retry.py
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from order_engine.domain.errors import OrderNumberCollision
from order_engine.utils.settings import ORDER_NUMBER_MAX_ATTEMPTS


def order_number_retry(max_attempts: int = ORDER_NUMBER_MAX_ATTEMPTS):
    #cała transakcja jest już wycofana, więc ponowienie jest bezpieczne
    return retry(
        reraise=True,
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(OrderNumberCollision),
    )
