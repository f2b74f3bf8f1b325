from typing import Dict, Any, List, Optional, Tuple
import asyncio
import hashlib
import hmac
import json
import logging

import httpx
from fastapi import BackgroundTasks

from formbuilder.core.config import WebhookSettings
from formbuilder.schemas.webhook import (
    DeliveryResult,
    DeliveryStatus,
    PayloadFormat,
    Webhook,
    WebhookDeliveryPayload,
    WebhookLog,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"

# Headers the dispatcher owns; custom webhook headers cannot override them
_RESERVED_HEADERS = {"user-agent", "content-type", SIGNATURE_HEADER.lower()}


def sign_payload(body: bytes, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of the exact body bytes"""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def serialize_payload(payload: WebhookDeliveryPayload) -> bytes:
    return json.dumps(
        payload.model_dump(mode="json"),
        separators=(",", ":"),
        ensure_ascii=False
    ).encode("utf-8")


def build_request(
    webhook: Webhook,
    payload: WebhookDeliveryPayload,
    user_agent: str
) -> Tuple[Dict[str, str], Dict[str, Any]]:
    """Return the headers and the httpx body arguments for one delivery.

    JSON bodies are signed; multipart bodies are sent unsigned.
    """
    headers = {
        name: value for name, value in webhook.headers.items()
        if name.lower() not in _RESERVED_HEADERS
    }
    headers["User-Agent"] = user_agent

    if webhook.payload_format == PayloadFormat.FORM_DATA:
        # (None, value) parts are plain form fields, httpx sets the boundary
        files = [
            ("form_id", (None, payload.form_id.encode("utf-8"))),
            ("response_id", (None, payload.response_id.encode("utf-8"))),
            ("data", (None, json.dumps(payload.data).encode("utf-8"))),
        ]
        return headers, {"files": files}

    body = serialize_payload(payload)
    headers["Content-Type"] = "application/json"
    headers[SIGNATURE_HEADER] = sign_payload(body, webhook.secret)
    return headers, {"content": body}


class WebhookDispatcher:
    """Delivers a stored submission to every enabled webhook of its form.

    Deliveries run concurrently, one webhook's retries run strictly one after
    another, and each webhook gets exactly one log row once its attempts are
    over. Nothing here raises to the caller: failures end up in the log store.
    """

    def __init__(
        self,
        store,
        config: WebhookSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=asyncio.sleep
    ):
        self.store = store
        self.config = config
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self.config.timeout_seconds
        )

    async def dispatch(
        self,
        form_id: str,
        submission_id: str,
        data: Dict[str, Any]
    ) -> List[DeliveryResult]:
        try:
            webhooks = self.store.get_enabled_webhooks(form_id)
        except Exception as e:
            logger.error(f"Failed to load webhooks for form {form_id}: {str(e)}")
            return []

        if not webhooks:
            logger.info(f"No webhooks to trigger for form {form_id}")
            return []

        payload = WebhookDeliveryPayload(form_id=form_id, response_id=submission_id, data=data)
        logger.info(f"Dispatching submission {submission_id} to {len(webhooks)} webhook(s)")

        async with self._client() as client:
            results = await asyncio.gather(
                *(self._deliver_and_log(client, webhook, payload) for webhook in webhooks)
            )
        return list(results)

    async def _deliver_and_log(
        self,
        client: httpx.AsyncClient,
        webhook: Webhook,
        payload: WebhookDeliveryPayload
    ) -> DeliveryResult:
        result = await self.send_webhook(webhook, payload, client=client)
        self._record_log(webhook, payload, result)
        return result

    def _record_log(
        self,
        webhook: Webhook,
        payload: WebhookDeliveryPayload,
        result: DeliveryResult
    ) -> None:
        log = WebhookLog(
            webhook_id=webhook.id,
            form_id=payload.form_id,
            submission_id=payload.response_id,
            status=result.status,
            response_code=result.response_code,
            response_body=result.response_body,
            attempt_count=result.attempt_count
        )
        try:
            self.store.insert_webhook_log(log)
        except Exception as e:
            logger.error(f"Failed to write webhook log for webhook {webhook.id}: {str(e)}")

    async def send_webhook(
        self,
        webhook: Webhook,
        payload: WebhookDeliveryPayload,
        client: Optional[httpx.AsyncClient] = None
    ) -> DeliveryResult:
        """Deliver to one webhook, retrying with exponential backoff"""
        if client is None:
            async with self._client() as own_client:
                return await self._send_with_retries(own_client, webhook, payload)
        return await self._send_with_retries(client, webhook, payload)

    async def _send_with_retries(
        self,
        client: httpx.AsyncClient,
        webhook: Webhook,
        payload: WebhookDeliveryPayload
    ) -> DeliveryResult:
        max_attempts = max(1, self.config.max_attempts) if webhook.retries_enabled else 1
        attempt = 1

        while True:
            logger.info(f"Sending webhook to {webhook.url} (Attempt {attempt}/{max_attempts})")
            result = await self._attempt(client, webhook, payload, attempt)
            if result.status == DeliveryStatus.SUCCESS or attempt >= max_attempts:
                return result

            delay = self.config.backoff_base_seconds * 2 ** (attempt - 1)
            logger.info(f"Retrying webhook {webhook.id} in {delay}s")
            await self._sleep(delay)
            attempt += 1

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        webhook: Webhook,
        payload: WebhookDeliveryPayload,
        attempt: int
    ) -> DeliveryResult:
        try:
            headers, body = build_request(webhook, payload, self.config.user_agent)
            response = await asyncio.wait_for(
                client.post(webhook.url, headers=headers, **body),
                timeout=self.config.timeout_seconds
            )
        except asyncio.TimeoutError:
            return self._failure(
                webhook, 0, f"Request timed out after {self.config.timeout_seconds}s", attempt
            )
        except Exception as e:
            return self._failure(webhook, 0, f"{type(e).__name__}: {str(e)}", attempt)

        if response.is_success:
            return DeliveryResult(
                webhook_id=webhook.id,
                status=DeliveryStatus.SUCCESS,
                response_code=response.status_code,
                response_body=self._truncate(response.text),
                attempt_count=attempt
            )

        return self._failure(
            webhook,
            response.status_code,
            f"HTTP {response.status_code}: {response.text}",
            attempt
        )

    def _failure(self, webhook: Webhook, code: int, message: str, attempt: int) -> DeliveryResult:
        logger.warning(f"Attempt {attempt} to {webhook.url} failed: {message}")
        return DeliveryResult(
            webhook_id=webhook.id,
            status=DeliveryStatus.FAILED,
            response_code=code,
            response_body=self._truncate(message),
            attempt_count=attempt
        )

    def _truncate(self, text: str) -> str:
        return text[:self.config.response_body_limit]


def schedule_dispatch(
    background_tasks: BackgroundTasks,
    dispatcher: WebhookDispatcher,
    form_id: str,
    submission_id: str,
    data: Dict[str, Any]
) -> None:
    """Run the dispatch after the current response has been sent"""
    background_tasks.add_task(dispatcher.dispatch, form_id, submission_id, data)
