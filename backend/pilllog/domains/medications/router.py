"""API routes for the medications domain."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pilllog.core.dependencies import CurrentUser, DbSession
from pilllog.domains.medications.kfda_client import (
    DrugRegistryAPIError,
    DrugRegistryClient,
    DrugRegistryConfigurationError,
    get_drug_registry_client,
)
from pilllog.domains.medications.schemas import (
    DrugInfoResponse,
    DrugSearchResponse,
    DrugSearchType,
    MedicationCreate,
    MedicationInsert,
    MedicationResponse,
    MedicationUpdate,
)
from pilllog.domains.medications.service import MedicationsService

logger = logging.getLogger(__name__)

router = APIRouter()

DrugRegistry = Annotated[DrugRegistryClient, Depends(get_drug_registry_client)]


@router.get("", response_model=list[MedicationResponse])
def list_medications(db: DbSession, current_user: CurrentUser):
    service = MedicationsService(db)
    return service.get_medications(current_user)


# Declared before /{medication_id} so "search" is not taken for an id.
@router.get("/search", response_model=DrugSearchResponse)
def search_drug_registry(
    registry: DrugRegistry,
    query: str | None = Query(None, description="Search term"),
    search_type: DrugSearchType = Query(
        DrugSearchType.NAME, alias="type", description="Field to match: name, ingredient or company"
    ),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """
    Search the MFDS drug product registry.

    Proxies the public government API; nothing is stored locally.
    """
    if not query or not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="검색어가 필요합니다")

    try:
        result = registry.search(query.strip(), search_type=search_type, page=page, limit=limit)
    except DrugRegistryConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except DrugRegistryAPIError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return DrugSearchResponse(
        medications=[DrugInfoResponse.model_validate(m) for m in result.medications],
        total_count=result.total_count,
    )


@router.get("/{medication_id}", response_model=MedicationResponse)
def get_medication(medication_id: str, db: DbSession, current_user: CurrentUser):
    service = MedicationsService(db)
    medication = service.get_medication(medication_id)
    if not medication:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    return medication


@router.post("", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
def create_medication(medication: MedicationCreate, db: DbSession, current_user: CurrentUser):
    service = MedicationsService(db)
    created = service.create_medication(
        MedicationInsert(**medication.model_dump(), user_id=current_user)
    )
    logger.info(f"Created medication {created.id} for user {current_user}")
    return created


@router.patch("/{medication_id}", response_model=MedicationResponse)
def update_medication(
    medication_id: str,
    medication: MedicationUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    service = MedicationsService(db)
    try:
        updated = service.update_medication(medication_id, medication)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    return updated
