# inventory_tracker/routes/inventory.py
"""
REST endpoints for product records.

Request bodies are validated by the pydantic schemas before the service is
called. Domain errors raised by the service are turned into responses by the
exception handlers registered in main.py (409 duplicate, 404 missing, 422
invalid).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from inventory_tracker.dependencies import get_inventory_service
from inventory_tracker.schemas.product import (
    ProductCreate,
    ProductDeleted,
    ProductList,
    ProductRead,
    ProductUpdate,
)
from inventory_tracker.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.create_product(product_data)


@router.get("", response_model=ProductList)
async def list_products(
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.list_products(category=category, page=page, page_size=page_size)


@router.get("/{name:path}", response_model=ProductRead)
async def get_product(
    name: str,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.get_product(name)


@router.patch("/{name:path}", response_model=ProductRead)
async def update_product(
    name: str,
    product_data: ProductUpdate,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.update_product(name, product_data)


@router.delete("/{name:path}", response_model=ProductDeleted)
async def delete_product(
    name: str,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.delete_product(name)
