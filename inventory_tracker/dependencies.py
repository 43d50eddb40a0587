from fastapi import Request

from inventory_tracker.services.change_bus import ChangeBus
from inventory_tracker.services.inventory_service import InventoryService
from inventory_tracker.services.product_store import ProductStore


def get_bus(request: Request) -> ChangeBus:
    return request.app.state.bus


def get_store(request: Request) -> ProductStore:
    return request.app.state.store


def get_inventory_service(request: Request) -> InventoryService:
    """Dependency for the process-scoped service built in the app lifespan."""
    return request.app.state.inventory_service
