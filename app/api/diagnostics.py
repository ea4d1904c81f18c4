"""Read-only views over recent webhook attempts"""
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_diagnostics
from app.core.enums import FormType
from app.schemas.diagnostics import DiagnosticEntry, WebhookHealth
from app.services.diagnostics import DiagnosticsBuffer

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.get("/submissions")
async def list_submissions(
    limit: int = Query(20, ge=1, le=100),
    diagnostics: DiagnosticsBuffer = Depends(get_diagnostics),
):
    return {
        "submissions": diagnostics.recent(limit),
        "stats": diagnostics.stats(),
    }


@router.get("/submissions/{form_type}")
async def list_submissions_by_form(
    form_type: FormType,
    diagnostics: DiagnosticsBuffer = Depends(get_diagnostics),
):
    entries = diagnostics.by_form_type(form_type)
    return {"form_type": form_type.value, "count": len(entries), "submissions": entries}


@router.get("/submission/{entry_id}", response_model=DiagnosticEntry)
async def get_submission(entry_id: str, diagnostics: DiagnosticsBuffer = Depends(get_diagnostics)):
    entry = diagnostics.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    return entry


@router.post("/submissions/clear")
async def clear_submissions(diagnostics: DiagnosticsBuffer = Depends(get_diagnostics)):
    diagnostics.clear()
    return {"cleared": True}


@router.get("/health", response_model=WebhookHealth)
async def webhook_health(diagnostics: DiagnosticsBuffer = Depends(get_diagnostics)):
    return diagnostics.health()
