"""
Upload API endpoints.

Spreadsheet and namecard uploads are multipart forms. The asynchronous
variants answer 202 with a job id to poll at ``/status/{job_id}``.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from api.dependencies import get_import_service, get_job_tracker
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope
from modules.contacts.models import DEFAULT_CATEGORY
from modules.jobs.interfaces import IJobTracker
from modules.ratelimit.models import RouteClass
from shared.exceptions import ValidationError

from .models import FieldMapping, UploadedFile
from .service import ImportService

router = APIRouter()

authenticated = RequestGate()
upload_gate = RequestGate(RouteClass.UPLOAD)
# Imports create contacts, so they also get the advisory quota check
import_gate = RequestGate(RouteClass.UPLOAD, quota=True)


async def _buffer(file: UploadFile) -> UploadedFile:
    return UploadedFile(
        filename=file.filename or "upload",
        content_type=file.content_type,
        content=await file.read(),
    )


def _parse_mappings(raw: Optional[str]) -> FieldMapping:
    if not raw:
        return FieldMapping()
    try:
        return FieldMapping.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValueError) as e:
        raise ValidationError(
            "Column mappings must be a JSON object", code="INVALID_MAPPINGS"
        ) from e


def _accepted(job_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=202,
        content=envelope(
            {
                "jobId": job_id,
                "message": "File uploaded. Processing started.",
                "statusUrl": f"/api/uploads/status/{job_id}",
            }
        ),
    )


@router.post("/spreadsheet", status_code=202)
async def upload_spreadsheet(
    file: UploadFile = File(...),
    ctx: GateContext = Depends(import_gate),
    service: ImportService = Depends(get_import_service),
):
    """Queue a spreadsheet import with automatic column mapping."""
    job_id = await service.submit_spreadsheet(ctx.tenant_id, await _buffer(file))
    return _accepted(job_id)


@router.post("/spreadsheet/preview")
async def preview_spreadsheet(
    file: UploadFile = File(...),
    ctx: GateContext = Depends(upload_gate),
    service: ImportService = Depends(get_import_service),
):
    return envelope(await service.preview_spreadsheet(await _buffer(file)))


@router.post("/spreadsheet/import")
async def import_spreadsheet(
    file: UploadFile = File(...),
    mappings: Optional[str] = Form(default=None),
    skip_duplicates: bool = Form(default=True, alias="skipDuplicates"),
    default_category: str = Form(default=DEFAULT_CATEGORY, alias="defaultCategory"),
    ctx: GateContext = Depends(import_gate),
    service: ImportService = Depends(get_import_service),
):
    """Import synchronously with the column mapping confirmed by the user."""
    result = await service.import_spreadsheet(
        ctx.tenant_id,
        await _buffer(file),
        _parse_mappings(mappings),
        skip_duplicates=skip_duplicates,
        default_category=default_category,
    )
    data = result.model_dump(mode="json")
    data["message"] = result.summary()
    return envelope(data)


@router.post("/namecard", status_code=202)
async def upload_namecard(
    image: UploadFile = File(...),
    ctx: GateContext = Depends(import_gate),
    service: ImportService = Depends(get_import_service),
):
    job_id = await service.submit_namecard(ctx.tenant_id, await _buffer(image))
    return _accepted(job_id)


@router.post("/namecard/instant")
async def scan_namecard(
    image: UploadFile = File(...),
    ctx: GateContext = Depends(upload_gate),
    service: ImportService = Depends(get_import_service),
):
    """Read a business card and return the fields without saving a contact."""
    return envelope(await service.scan_namecard_instant(ctx.tenant_id, await _buffer(image)))


@router.get("/status/{job_id}")
async def job_status(
    job_id: str,
    ctx: GateContext = Depends(authenticated),
    jobs: IJobTracker = Depends(get_job_tracker),
):
    job = await jobs.get(job_id, owner_id=ctx.tenant_id)
    return envelope(job.to_status_payload())
