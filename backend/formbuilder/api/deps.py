from fastapi import Depends

from formbuilder.core.config import settings
from formbuilder.db.store import SupabaseStore
from formbuilder.db.supabase import get_supabase_client
from formbuilder.services.webhook_dispatcher import WebhookDispatcher


def get_store() -> SupabaseStore:
    return SupabaseStore(get_supabase_client())


def get_dispatcher(store: SupabaseStore = Depends(get_store)) -> WebhookDispatcher:
    return WebhookDispatcher(store, settings.webhook_settings())
