from fastapi import APIRouter, Depends, Query, status

from timetabler.api.deps import get_store
from timetabler.core.config import Settings, get_settings
from timetabler.schemas.generator import (
    GeneratePreviewResponse,
    GenerateTimetableRequest,
    GenerateTimetableResponse,
)
from timetabler.schemas.timetable import TimetableCandidate, TimetableCreate, TimetableOut, TimetableUpdate
from timetabler.schemas.validation import ValidationReport
from timetabler.schemas.workload import WorkloadRecomputeReport
from timetabler.services import scheduling
from timetabler.services.store import TimetableStore

router = APIRouter()


@router.get("/", response_model=list[TimetableOut])
def list_timetables(
    semester: int | None = Query(default=None, ge=1, le=20),
    department: str | None = None,
    store: TimetableStore = Depends(get_store),
) -> list[TimetableOut]:
    timetables = store.list_timetables()
    if semester is not None:
        timetables = [item for item in timetables if item.semester == semester]
    if department:
        timetables = [item for item in timetables if item.department == department]
    return timetables


@router.post("/validate", response_model=ValidationReport)
def validate_timetable(payload: TimetableCandidate, store: TimetableStore = Depends(get_store)) -> ValidationReport:
    return scheduling.validate_candidate(store, payload)


@router.post("/generate/preview", response_model=GeneratePreviewResponse)
def preview_generated_timetable(
    payload: GenerateTimetableRequest,
    store: TimetableStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> GeneratePreviewResponse:
    generated, report = scheduling.preview_generated(store, payload, settings)
    return GeneratePreviewResponse(generated=generated, report=report)


@router.post("/generate", response_model=GenerateTimetableResponse, status_code=status.HTTP_201_CREATED)
def generate_timetable(
    payload: GenerateTimetableRequest,
    store: TimetableStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> GenerateTimetableResponse:
    saved, generated, report = scheduling.generate_and_save(store, payload, settings)
    return GenerateTimetableResponse(
        timetable=TimetableOut.model_validate(saved),
        message="Timetable generated and saved successfully",
        soft_score=generated.soft_score,
        warnings=report.warnings,
    )


@router.post("/workloads/recompute", response_model=WorkloadRecomputeReport)
def recompute_workloads(store: TimetableStore = Depends(get_store)) -> WorkloadRecomputeReport:
    return scheduling.recompute_workloads(store)


@router.post("/", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def create_timetable(payload: TimetableCreate, store: TimetableStore = Depends(get_store)) -> TimetableOut:
    saved, _ = scheduling.create_timetable(store, payload)
    return TimetableOut.model_validate(saved)


@router.get("/{timetable_id}", response_model=TimetableOut)
def get_timetable(timetable_id: str, store: TimetableStore = Depends(get_store)) -> TimetableOut:
    return TimetableOut.model_validate(store.get_timetable_row(timetable_id))


@router.put("/{timetable_id}", response_model=TimetableOut)
def update_timetable(
    timetable_id: str,
    payload: TimetableUpdate,
    store: TimetableStore = Depends(get_store),
) -> TimetableOut:
    saved, _ = scheduling.replace_timetable(store, timetable_id, payload)
    return TimetableOut.model_validate(saved)


@router.delete("/{timetable_id}")
def delete_timetable(timetable_id: str, store: TimetableStore = Depends(get_store)) -> dict:
    scheduling.delete_timetable(store, timetable_id)
    return {"success": True}
