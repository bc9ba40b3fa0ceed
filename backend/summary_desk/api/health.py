# summary_desk/api/health.py
from datetime import datetime
from fastapi import APIRouter
from summary_desk.config import settings
from summary_desk.core.storage.blob_store import get_blob_store
from summary_desk.exceptions import ConfigurationError

router = APIRouter()

@router.get("/api/health")
def health_check():
    """Detailed health check"""
    try:
        store = get_blob_store()
        storage_type = store.get_storage_type()
        storage_reachable = store.check_connection()
    except ConfigurationError:
        storage_type = None
        storage_reachable = False

    return {
        "status": "healthy" if storage_reachable else "degraded",
        "timestamp": datetime.now().isoformat(),
        "environment": settings.environment,
        "storage_type": storage_type,
        "storage_reachable": storage_reachable,
        "summary_webhook_configured": settings.summary_webhook_configured,
    }
