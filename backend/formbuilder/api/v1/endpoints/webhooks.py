from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from typing import List
import logging

from formbuilder.api.deps import get_dispatcher, get_store
from formbuilder.db.store import SupabaseStore
from formbuilder.schemas.webhook import (
    Webhook,
    WebhookCreate,
    WebhookDeliveryPayload,
    WebhookLog,
    WebhookUpdate,
)
from formbuilder.services.webhook_dispatcher import WebhookDispatcher, schedule_dispatch

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/forms/{form_id}/webhooks", response_model=List[Webhook])
async def list_webhooks(form_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        return store.list_webhooks(form_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch webhooks: {str(e)}")


@router.post("/forms/{form_id}/webhooks", response_model=Webhook, status_code=201)
async def create_webhook(
    form_id: str,
    webhook: WebhookCreate,
    store: SupabaseStore = Depends(get_store)
):
    try:
        created = store.create_webhook(form_id, webhook)
        logger.info(f"Created webhook {created.id} for form {form_id}")
        return created
    except Exception as e:
        logger.error(f"Error creating webhook: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create webhook: {str(e)}")


@router.patch("/webhooks/{webhook_id}", response_model=Webhook)
async def update_webhook(
    webhook_id: str,
    updates: WebhookUpdate,
    store: SupabaseStore = Depends(get_store)
):
    try:
        updated = store.update_webhook(webhook_id, updates)
        if not updated:
            raise HTTPException(status_code=404, detail="Webhook not found")
        return updated
    except HTTPException as e:
        raise e
    except Exception as e:
        logger.error(f"Error updating webhook: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update webhook: {str(e)}")


@router.delete("/webhooks/{webhook_id}", status_code=204)
async def delete_webhook(webhook_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        if not store.delete_webhook(webhook_id):
            raise HTTPException(status_code=404, detail="Webhook not found")
        return Response(status_code=204)
    except HTTPException as e:
        raise e
    except Exception as e:
        logger.error(f"Error deleting webhook: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to delete webhook: {str(e)}")


@router.get("/forms/{form_id}/webhook-logs", response_model=List[WebhookLog])
async def list_webhook_logs(
    form_id: str,
    limit: int = Query(50, ge=1, le=500),
    store: SupabaseStore = Depends(get_store)
):
    try:
        return store.list_webhook_logs(form_id, limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch webhook logs: {str(e)}")


@router.post("/webhooks/trigger", status_code=202)
async def trigger_webhooks(
    payload: WebhookDeliveryPayload,
    background_tasks: BackgroundTasks,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher)
):
    """Queue delivery of an already stored response to its form's webhooks"""
    schedule_dispatch(
        background_tasks,
        dispatcher,
        payload.form_id,
        payload.response_id,
        payload.data
    )
    return {"status": "accepted", "form_id": payload.form_id, "response_id": payload.response_id}
