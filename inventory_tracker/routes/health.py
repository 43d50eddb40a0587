from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from inventory_tracker.dependencies import get_bus, get_store
from inventory_tracker.services.change_bus import ChangeBus
from inventory_tracker.services.product_store import ProductStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Inventory Tracker"}


@router.get("/health/db")
async def database_health(store: ProductStore = Depends(get_store)):
    """Check database connectivity and product count"""
    try:
        await store.ping()
        products = await store.count()
        return {
            "status": "healthy",
            "database": "connected",
            "products": products
        }
    except SQLAlchemyError as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }


@router.get("/health/bus")
async def bus_health(bus: ChangeBus = Depends(get_bus)):
    """Real-time fan-out statistics"""
    return {"status": "healthy", **bus.stats()}
