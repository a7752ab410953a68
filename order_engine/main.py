# order_engine/main.py
import uvicorn

from order_engine.api import create_app
from order_engine.data.database import init_db
from order_engine.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

try:
    init_db()
    logger.info("Database tables created")
except Exception:
    logger.exception("Failed to create tables")
    raise


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
