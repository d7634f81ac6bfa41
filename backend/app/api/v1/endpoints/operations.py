"""
Async Operations API Endpoints

Poll the status of background jobs started by the production order routes.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db
from app.schemas.operation_status import AsyncOperationResponse
from app.services.async_operations import (
    get_operation,
    list_active_operations,
    list_operations_for_entity,
)

router = APIRouter()


@router.get("/active", response_model=List[AsyncOperationResponse])
def active_operations(db: Session = Depends(get_db)):
    return list_active_operations(db)


@router.get("/entity/{entity_type}/{entity_id}", response_model=List[AsyncOperationResponse])
def operations_for_entity(entity_type: str, entity_id: int, db: Session = Depends(get_db)):
    return list_operations_for_entity(db, entity_type.upper(), entity_id)


@router.get("/{operation_id}", response_model=AsyncOperationResponse)
def operation_status(operation_id: str, db: Session = Depends(get_db)):
    return get_operation(db, operation_id)
