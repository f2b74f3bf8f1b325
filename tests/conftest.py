"""
Pytest fixtures shared by the logic and webhook tests.
Provides an in-memory stand-in for the Supabase store and a recording sleep.
"""

import pytest
from datetime import datetime, timezone

from formbuilder.core.config import WebhookSettings
from formbuilder.db.store import StoreError
from formbuilder.schemas.form import Form, FormResponse
from formbuilder.schemas.webhook import Webhook, WebhookLog


class InMemoryStore:
    """Keeps forms, responses, webhooks and logs in lists and dicts."""

    def __init__(self):
        self.forms = {}
        self.responses = []
        self.webhooks = []
        self.logs = []
        self.fail_webhook_reads = False
        self.fail_log_writes = False

    def get_form(self, form_id):
        return self.forms.get(form_id)

    def insert_response(self, form_id, data):
        response = FormResponse(
            id=f"resp-{len(self.responses) + 1}",
            form_id=form_id,
            data=data,
            created_at=datetime.now(timezone.utc),
        )
        self.responses.append(response)
        return response

    def list_responses(self, form_id):
        return [r for r in reversed(self.responses) if r.form_id == form_id]

    def get_enabled_webhooks(self, form_id):
        if self.fail_webhook_reads:
            raise StoreError("form_webhooks", "connection refused")
        return [w for w in self.webhooks if w.form_id == form_id and w.enabled]

    def list_webhooks(self, form_id):
        return [w for w in reversed(self.webhooks) if w.form_id == form_id]

    def create_webhook(self, form_id, webhook):
        created = Webhook(id=f"wh-{len(self.webhooks) + 1}", form_id=form_id, **webhook.model_dump())
        self.webhooks.append(created)
        return created

    def update_webhook(self, webhook_id, updates):
        for index, webhook in enumerate(self.webhooks):
            if webhook.id == webhook_id:
                updated = webhook.model_copy(update=updates.model_dump(exclude_unset=True))
                self.webhooks[index] = updated
                return updated
        return None

    def delete_webhook(self, webhook_id):
        before = len(self.webhooks)
        self.webhooks = [w for w in self.webhooks if w.id != webhook_id]
        return len(self.webhooks) < before

    def insert_webhook_log(self, log: WebhookLog):
        if self.fail_log_writes:
            raise StoreError("webhook_logs", "insert failed")
        self.logs.append(log)

    def list_webhook_logs(self, form_id, limit=50):
        return [log for log in reversed(self.logs) if log.form_id == form_id][:limit]


class RecordingSleep:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def webhook_settings():
    return WebhookSettings(timeout_seconds=10.0)


@pytest.fixture
def make_webhook():
    """Build a Webhook with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "id": f"wh-{counter['n']}",
            "form_id": "f1",
            "url": f"https://hooks.example.com/{counter['n']}",
            "secret": "topsecret",
            "enabled": True,
            "headers": {},
            "payload_format": "json",
            "retries_enabled": True,
        }
        values.update(overrides)
        return Webhook(**values)

    return _make


@pytest.fixture
def contact_form():
    """A form whose email field becomes required for US visitors."""
    return Form.model_validate({
        "id": "f1",
        "title": "Contact",
        "schema": {
            "title": "Contact",
            "fields": [
                {"id": "name", "type": "text", "label": "Name", "required": True},
                {"id": "country", "type": "select", "label": "Country", "options": ["US", "CA"]},
                {
                    "id": "email",
                    "type": "text",
                    "label": "Email",
                    "required": False,
                    "logic": [
                        {
                            "id": "rule-1",
                            "conditions": [{"fieldId": "country", "operator": "equals", "value": "US"}],
                            "action": "require",
                        }
                    ],
                },
            ],
        },
    })
