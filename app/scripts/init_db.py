from app.core.db import init_models, dispose_engine
from app.core.logging import setup_logging
import asyncio


async def init_db():
    try:
        await init_models()
        print("Coupon tables created!")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_db())
