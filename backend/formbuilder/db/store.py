from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
from uuid import uuid4

from formbuilder.schemas.form import Form, FormResponse
from formbuilder.schemas.webhook import Webhook, WebhookCreate, WebhookLog, WebhookUpdate

FORMS_TABLE = "forms"
RESPONSES_TABLE = "responses"
WEBHOOKS_TABLE = "form_webhooks"
WEBHOOK_LOGS_TABLE = "webhook_logs"


class StoreError(Exception):
    """Raised when a Supabase read or write fails."""

    def __init__(self, table: str, message: str):
        super().__init__(f"{table}: {message}")
        self.table = table


class SupabaseStore:
    """Reads and writes form, response and webhook rows in Supabase.

    The supabase client is synchronous; calls block for the duration of the
    request.
    """

    def __init__(self, client):
        self.client = client

    # Forms and responses

    def get_form(self, form_id: str) -> Optional[Form]:
        try:
            response = self.client.table(FORMS_TABLE)\
                .select("*")\
                .eq("id", form_id)\
                .execute()
        except Exception as e:
            raise StoreError(FORMS_TABLE, str(e)) from e

        if not response.data:
            return None
        return Form.model_validate(response.data[0])

    def insert_response(self, form_id: str, data: Dict[str, Any]) -> FormResponse:
        row = {
            "id": str(uuid4()),
            "form_id": form_id,
            "data": data,
            "created_at": datetime.now(timezone.utc).isoformat()
        }
        try:
            response = self.client.table(RESPONSES_TABLE)\
                .insert(row)\
                .execute()
        except Exception as e:
            raise StoreError(RESPONSES_TABLE, str(e)) from e

        if not response.data:
            raise StoreError(RESPONSES_TABLE, "Failed to store response")
        return FormResponse.model_validate(response.data[0])

    def list_responses(self, form_id: str) -> List[FormResponse]:
        try:
            response = self.client.table(RESPONSES_TABLE)\
                .select("*")\
                .eq("form_id", form_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise StoreError(RESPONSES_TABLE, str(e)) from e
        return [FormResponse.model_validate(row) for row in response.data or []]

    # Webhooks

    def get_enabled_webhooks(self, form_id: str) -> List[Webhook]:
        try:
            response = self.client.table(WEBHOOKS_TABLE)\
                .select("*")\
                .eq("form_id", form_id)\
                .eq("enabled", True)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOKS_TABLE, str(e)) from e
        return [Webhook.model_validate(row) for row in response.data or []]

    def list_webhooks(self, form_id: str) -> List[Webhook]:
        try:
            response = self.client.table(WEBHOOKS_TABLE)\
                .select("*")\
                .eq("form_id", form_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOKS_TABLE, str(e)) from e
        return [Webhook.model_validate(row) for row in response.data or []]

    def create_webhook(self, form_id: str, webhook: WebhookCreate) -> Webhook:
        row = {
            "id": str(uuid4()),
            "form_id": form_id,
            **webhook.model_dump(mode="json"),
            "created_at": datetime.now(timezone.utc).isoformat()
        }
        try:
            response = self.client.table(WEBHOOKS_TABLE)\
                .insert(row)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOKS_TABLE, str(e)) from e

        if not response.data:
            raise StoreError(WEBHOOKS_TABLE, "Failed to create webhook")
        return Webhook.model_validate(response.data[0])

    def update_webhook(self, webhook_id: str, updates: WebhookUpdate) -> Optional[Webhook]:
        changes = updates.model_dump(mode="json", exclude_unset=True)
        try:
            response = self.client.table(WEBHOOKS_TABLE)\
                .update(changes)\
                .eq("id", webhook_id)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOKS_TABLE, str(e)) from e

        if not response.data:
            return None
        return Webhook.model_validate(response.data[0])

    def delete_webhook(self, webhook_id: str) -> bool:
        try:
            response = self.client.table(WEBHOOKS_TABLE)\
                .delete()\
                .eq("id", webhook_id)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOKS_TABLE, str(e)) from e
        return bool(response.data)

    # Delivery logs

    def insert_webhook_log(self, log: WebhookLog) -> None:
        row = log.model_dump(mode="json", exclude={"id", "created_at"})
        try:
            self.client.table(WEBHOOK_LOGS_TABLE)\
                .insert(row)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOK_LOGS_TABLE, str(e)) from e

    def list_webhook_logs(self, form_id: str, limit: int = 50) -> List[WebhookLog]:
        try:
            response = self.client.table(WEBHOOK_LOGS_TABLE)\
                .select("*")\
                .eq("form_id", form_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
        except Exception as e:
            raise StoreError(WEBHOOK_LOGS_TABLE, str(e)) from e
        return [WebhookLog.model_validate(row) for row in response.data or []]
