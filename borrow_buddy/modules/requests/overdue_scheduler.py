import asyncio
import logging
from borrow_buddy.config import settings
from borrow_buddy.database.supabase_client import get_service_supabase
from borrow_buddy.modules.requests.service import RequestService

logger = logging.getLogger(__name__)


async def check_overdue_requests():
    """Mark unfinished requests past their end date as overdue."""
    try:
        service = RequestService(get_service_supabase())
        result = await asyncio.to_thread(service.mark_overdue)
        if result.updated:
            logger.info(f"Overdue sweep flipped {result.updated} request(s)")
        else:
            logger.debug("No overdue requests found")
    except Exception as e:
        logger.error(f"Error in overdue sweep: {str(e)}")


async def overdue_scheduler_loop():
    """Background task that periodically sweeps for overdue requests"""
    while True:
        try:
            await check_overdue_requests()
        except Exception as e:
            logger.error(f"Error in overdue scheduler loop: {str(e)}")

        await asyncio.sleep(settings.overdue_sweep_interval_sec)
