"""
Import service.

Entry points for spreadsheet imports and business card scans. Uploads are
validated synchronously (type and size errors reach the caller as 4xx);
the heavy work then runs as a tracked background job whose progress the
client polls. Anything raised inside a job marks the job failed.
"""

import asyncio
import logging
from typing import Any, Optional

from shared.exceptions import ExternalServiceError
from shared.storage import IObjectStorage

from modules.assistant.interfaces import IAssistantService
from modules.contacts.interfaces import IContactService
from modules.contacts.models import DEFAULT_CATEGORY, CreateContactRequest
from modules.jobs.interfaces import IJobTracker
from modules.jobs.models import JobKind
from modules.notifications.service import INotificationService

from .models import DETAIL_LIMIT, FieldMapping, ImportResult, ParsedSheet, UploadedFile
from .normalization import UNKNOWN_NAME, normalize_email, normalize_phone, suggest_mapping
from .parsing import parse_spreadsheet, validate_image, validate_spreadsheet
from .pipeline import ImportPipeline

logger = logging.getLogger(__name__)

NAMECARD_SOURCE = "namecard_scan"


class ImportService:
    """Spreadsheet imports and namecard scans for one tenant at a time."""

    def __init__(
        self,
        pipeline: ImportPipeline,
        jobs: IJobTracker,
        contacts: IContactService,
        storage: IObjectStorage,
        bucket: str,
        assistant: Optional[IAssistantService] = None,
        notifications: Optional[INotificationService] = None,
        max_spreadsheet_bytes: int = 10 * 1024 * 1024,
        max_image_bytes: int = 5 * 1024 * 1024,
    ):
        self._pipeline = pipeline
        self._jobs = jobs
        self._contacts = contacts
        self._storage = storage
        self._bucket = bucket
        self._assistant = assistant
        self._notifications = notifications
        self._max_spreadsheet_bytes = max_spreadsheet_bytes
        self._max_image_bytes = max_image_bytes

    # -------------------------------------------------------------------------
    # Column mapping
    # -------------------------------------------------------------------------

    async def suggest_columns(self, sheet: ParsedSheet) -> tuple[FieldMapping, Optional[dict[str, Any]]]:
        """
        Suggested mapping plus the model's data quality notes.

        The assistant is asked first; when it is unavailable or fails, the
        mapping comes from header names and there are no quality notes.
        """
        if self._assistant is not None and self._assistant.available:
            try:
                analysis = await self._assistant.analyze_spreadsheet(sheet.headers, sheet.sample())
            except ExternalServiceError as e:
                logger.warning(f"Column analysis unavailable, using header heuristics: {e.message}")
            else:
                mapping = FieldMapping.model_validate(analysis.column_mappings)
                if not mapping.is_empty():
                    quality = {
                        "issues": analysis.data_quality_issues,
                        "suggestions": analysis.suggested_cleanups,
                        "phone_format": analysis.phone_format,
                        "confidence": analysis.confidence,
                    }
                    return mapping, quality
        return suggest_mapping(sheet.headers), None

    # -------------------------------------------------------------------------
    # Spreadsheets
    # -------------------------------------------------------------------------

    async def _read(self, upload: UploadedFile) -> ParsedSheet:
        return await asyncio.to_thread(parse_spreadsheet, upload)

    async def preview_spreadsheet(self, upload: UploadedFile) -> dict[str, Any]:
        validate_spreadsheet(upload, self._max_spreadsheet_bytes)
        sheet = await self._read(upload)
        mapping, quality = await self.suggest_columns(sheet)
        return {
            "file_name": upload.filename,
            "total_rows": sheet.total_rows,
            "headers": sheet.headers,
            "sample_rows": sheet.sample(DETAIL_LIMIT),
            "column_mappings": mapping.model_dump(),
            "data_quality": quality,
            "sheets": sheet.sheet_names,
        }

    async def import_spreadsheet(
        self,
        tenant_id: str,
        upload: UploadedFile,
        mapping: FieldMapping,
        skip_duplicates: bool = True,
        default_category: str = DEFAULT_CATEGORY,
    ) -> ImportResult:
        """Import with a caller-supplied mapping, in the request."""
        validate_spreadsheet(upload, self._max_spreadsheet_bytes)
        sheet = await self._read(upload)
        if mapping.is_empty():
            mapping = suggest_mapping(sheet.headers)
        return await self._pipeline.run(
            tenant_id,
            sheet.rows,
            mapping,
            skip_duplicates=skip_duplicates,
            default_category=default_category or DEFAULT_CATEGORY,
        )

    async def submit_spreadsheet(self, tenant_id: str, upload: UploadedFile) -> str:
        """Validate the upload, then import it in the background. Returns the job id."""
        validate_spreadsheet(upload, self._max_spreadsheet_bytes)
        job_id = await self._jobs.create(owner_id=tenant_id, kind=JobKind.SPREADSHEET_IMPORT.value)
        self._jobs.dispatch(
            self._process_spreadsheet(job_id, tenant_id, upload), name=f"import-{job_id}"
        )
        return job_id

    async def _process_spreadsheet(self, job_id: str, tenant_id: str, upload: UploadedFile) -> None:
        try:
            await self._jobs.set_progress(job_id, 10, "Reading spreadsheet")
            sheet = await self._read(upload)

            await self._jobs.set_progress(job_id, 30, f"Found {sheet.total_rows} rows. Analyzing columns")
            mapping, _ = await self.suggest_columns(sheet)

            await self._jobs.set_progress(job_id, 50, "Importing contacts")
            result = await self._pipeline.run(tenant_id, sheet.rows, mapping)

            await self._jobs.complete(job_id, result.model_dump(mode="json"), result.summary())
        except Exception as e:
            logger.exception(f"Spreadsheet import {job_id} failed")
            await self._jobs.fail(job_id, str(e))
            return

        if self._notifications is not None:
            await self._notifications.send_template(
                tenant_id,
                "import_complete",
                {"count": result.imported, "duplicates": result.duplicates, "job_id": job_id},
            )

    # -------------------------------------------------------------------------
    # Namecards
    # -------------------------------------------------------------------------

    async def _extract(self, upload: UploadedFile) -> dict[str, Any]:
        if self._assistant is None:
            raise ExternalServiceError("Business card reading is not configured", service="llm")
        return await self._assistant.extract_namecard(
            upload.content, upload.content_type or "image/jpeg"
        )

    async def scan_namecard_instant(self, tenant_id: str, upload: UploadedFile) -> dict[str, Any]:
        """Read a card without storing anything."""
        validate_image(upload, self._max_image_bytes)
        extracted = await self._extract(upload)
        logger.debug(f"Instant namecard scan for {tenant_id}")
        return {
            "extracted": extracted,
            "raw_text": extracted.get("raw_text"),
            "confidence": extracted.get("confidence", 0),
        }

    async def submit_namecard(self, tenant_id: str, upload: UploadedFile) -> str:
        """Validate the image, then scan and save it in the background. Returns the job id."""
        validate_image(upload, self._max_image_bytes)
        job_id = await self._jobs.create(owner_id=tenant_id, kind=JobKind.NAMECARD_SCAN.value)
        self._jobs.dispatch(self._process_namecard(job_id, tenant_id, upload), name=f"namecard-{job_id}")
        return job_id

    async def _process_namecard(self, job_id: str, tenant_id: str, upload: UploadedFile) -> None:
        try:
            await self._jobs.set_progress(job_id, 30, "Extracting text")
            extracted = await self._extract(upload)

            await self._jobs.set_progress(job_id, 70, "Saving contact")
            path = f"namecards/{tenant_id}/{job_id}.jpg"
            image_url = await self._storage.put(
                self._bucket, path, upload.content, upload.content_type or "image/jpeg"
            )

            request = CreateContactRequest(
                name=extracted.get("name") or UNKNOWN_NAME,
                email=normalize_email(extracted.get("email")),
                phone=normalize_phone(extracted.get("phone")),
                company=extracted.get("company"),
                position=extracted.get("position"),
                address=extracted.get("address"),
                notes=extracted.get("raw_text"),
                custom_fields={"namecard_image": path, "namecard_url": image_url},
            )
            contact = await self._contacts.create(tenant_id, request, default_source=NAMECARD_SOURCE)

            await self._jobs.complete(
                job_id,
                {"contact": contact, "extracted": extracted, "image_url": image_url},
                "Contact created successfully",
            )
        except Exception as e:
            logger.exception(f"Namecard scan {job_id} failed")
            await self._jobs.fail(job_id, str(e))
