"""
System Configuration API Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db
from app.schemas.audit import LotSizeThresholdResponse, LotSizeThresholdUpdate
from app.services.system_config_service import SystemConfigService

router = APIRouter()


@router.get("/lot-size-threshold", response_model=LotSizeThresholdResponse)
def get_lot_size_threshold(db: Session = Depends(get_db)):
    return LotSizeThresholdResponse(threshold=SystemConfigService.get_lot_size_threshold(db))


@router.put("/lot-size-threshold", response_model=LotSizeThresholdResponse)
def update_lot_size_threshold(payload: LotSizeThresholdUpdate, db: Session = Depends(get_db)):
    """Takes effect for the next classification; confirmed orders keep their scenario."""
    SystemConfigService.set_lot_size_threshold(db, payload.threshold, updated_by=payload.updated_by)
    db.commit()
    return LotSizeThresholdResponse(threshold=SystemConfigService.get_lot_size_threshold(db))
