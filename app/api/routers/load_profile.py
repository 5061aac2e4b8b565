"""
app/api/routers/load_profile.py

Load-profile HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload
from app.schemas.load_profile import (
    LoadProfileResponse,
    ParsedPreviewResponse,
    ProcessedLoadProfileResponse,
)
from app.services.load_profile_service import (
    LoadProfilePersistenceError,
    LoadProfileProcessingError,
    LoadProfileService,
    get_load_profile_service,
)
from db.repositories.load_profile_repository import LoadProfileRepository, record_to_profile
from db.session import get_db
from load_profile.models import DateOrder, ParseConfigOverride

router = APIRouter(prefix="/load-profiles", tags=["load-profiles"])


def _build_override(
    *,
    value_column_index: int | None,
    unit: str | None,
    voltage_v: float | None,
    power_factor: float | None,
    date_order: DateOrder | None,
) -> ParseConfigOverride | None:
    if all(value is None for value in (value_column_index, unit, voltage_v, power_factor, date_order)):
        return None
    return ParseConfigOverride(
        value_column_index=value_column_index,
        unit=unit,
        voltage_v=voltage_v,
        power_factor=power_factor,
        date_order=date_order,
    )


@router.post("/preview", response_model=ParsedPreviewResponse)
def preview_load_profile(
    file: UploadFile = Depends(get_csv_upload),
    start_row: int | None = Query(default=None, ge=1, description="Override the detected header row"),
    service: LoadProfileService = Depends(get_load_profile_service),
) -> ParsedPreviewResponse:
    """
    Return detected structure, headers and a truncated row sample.
    """

    override = ParseConfigOverride(start_row=start_row) if start_row is not None else None
    try:
        text = service.read_upload(file)
        parsed = service.preview(text, override=override)
    except LoadProfileProcessingError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.to_dict(),
        ) from exc
    finally:
        file.file.close()

    return ParsedPreviewResponse.from_preview(parsed)


@router.post("/process", response_model=ProcessedLoadProfileResponse)
def process_load_profile(
    file: UploadFile = Depends(get_csv_upload),
    meter_name: str | None = Query(default=None, description="Meter to store the profile under"),
    value_column_index: int | None = Query(default=None, ge=0, description="Explicit value column"),
    unit: str | None = Query(default=None, description="Explicit unit, e.g. kWh or kW"),
    voltage_v: float | None = Query(default=None, gt=0),
    power_factor: float | None = Query(default=None, gt=0, le=1),
    date_order: DateOrder | None = Query(default=None),
    db: Session = Depends(get_db),
    service: LoadProfileService = Depends(get_load_profile_service),
) -> ProcessedLoadProfileResponse:
    """
    Build a load profile from one export and replace the meter's stored profile.
    """

    override = _build_override(
        value_column_index=value_column_index,
        unit=unit,
        voltage_v=voltage_v,
        power_factor=power_factor,
        date_order=date_order,
    )
    try:
        text = service.read_upload(file)
        stored = service.process_and_store(
            text=text,
            db=db,
            meter_name=meter_name,
            source_filename=file.filename,
            override=override,
        )
    except LoadProfileProcessingError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.to_dict(),
        ) from exc
    except LoadProfilePersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist load profile.",
        ) from exc
    finally:
        file.file.close()

    return ProcessedLoadProfileResponse.from_result(stored.meter_name, stored.result)


@router.get("/{meter_name}", response_model=LoadProfileResponse)
def get_load_profile(
    meter_name: str,
    db: Session = Depends(get_db),
) -> LoadProfileResponse:
    """
    Return the stored profile for one meter.
    """

    record = LoadProfileRepository(db).get_by_meter_name(meter_name)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No load profile stored for meter '{meter_name}'.",
        )
    return LoadProfileResponse.from_profile(record_to_profile(record))
