"""
Scheduled jobs, called by the platform cron with a shared bearer secret.

- POST /cron/reset-usage: zero every daily counter
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from trendly.api.deps import Services, get_services
from trendly.core.auth import require_cron_secret
from trendly.core.errors import PersistenceError

logger = logging.getLogger("trendly.usage")

router = APIRouter(prefix="/cron", tags=["cron"])


@router.post("/reset-usage", dependencies=[Depends(require_cron_secret)])
def reset_usage(services: Services = Depends(get_services)):
    now = datetime.now(timezone.utc)
    if not services.quota_store.reset_all(now.date()):
        raise PersistenceError("Failed to reset usage")

    logger.info("Daily usage reset completed", extra={"event_type": "cron.reset_usage"})
    return {
        "message": "Daily usage reset completed successfully",
        "timestamp": now.isoformat(),
    }
