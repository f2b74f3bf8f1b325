from fastapi import APIRouter
from formbuilder.api.v1.endpoints import forms, webhooks

api_router = APIRouter()
api_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_router.include_router(webhooks.router, tags=["webhooks"])
