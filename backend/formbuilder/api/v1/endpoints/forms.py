from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException
from typing import List, Dict, Any
import logging

from formbuilder.api.deps import get_dispatcher, get_store
from formbuilder.db.store import SupabaseStore
from formbuilder.schemas.form import (
    Form,
    FormResponse,
    LogicEvaluationRequest,
    LogicEvaluationResponse,
)
from formbuilder.services.logic_engine import evaluate_all_field_logic, find_missing_required_fields
from formbuilder.services.webhook_dispatcher import WebhookDispatcher, schedule_dispatch

router = APIRouter()
logger = logging.getLogger(__name__)


def _load_form(store: SupabaseStore, form_id: str) -> Form:
    form = store.get_form(form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.get("/{form_id}", response_model=Form)
async def get_form(form_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        return _load_form(store, form_id)
    except HTTPException as e:
        raise e
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch form: {str(e)}"
        )


@router.post("/{form_id}/logic", response_model=LogicEvaluationResponse)
async def evaluate_form_logic(
    form_id: str,
    request: LogicEvaluationRequest,
    store: SupabaseStore = Depends(get_store)
):
    try:
        form = _load_form(store, form_id)
        states = evaluate_all_field_logic(form.schema_, request.data)
        missing = find_missing_required_fields(form.schema_, request.data)
        return LogicEvaluationResponse(form_id=form_id, states=states, missing_required=missing)
    except HTTPException as e:
        raise e
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to evaluate form logic: {str(e)}"
        )


@router.post("/{form_id}/responses", response_model=FormResponse, status_code=201)
async def submit_response(
    form_id: str,
    background_tasks: BackgroundTasks,
    data: Dict[str, Any] = Body(...),
    store: SupabaseStore = Depends(get_store),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher)
):
    try:
        form = _load_form(store, form_id)

        missing = find_missing_required_fields(form.schema_, data)
        if missing:
            raise HTTPException(
                status_code=422,
                detail={"message": "Required fields are missing", "fields": missing}
            )

        response = store.insert_response(form_id, data)
        logger.info(f"Stored response {response.id} for form {form_id}")

        # Webhook delivery runs after this response is sent
        schedule_dispatch(background_tasks, dispatcher, form_id, response.id, data)
        return response

    except HTTPException as e:
        raise e
    except Exception as e:
        logger.error(f"Error in submit_response: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process form submission: {str(e)}"
        )


@router.get("/{form_id}/responses", response_model=List[FormResponse])
async def list_responses(form_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        return store.list_responses(form_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
