"""httpx client for the VizzionPay-style PIX gateway.

Two calls are used:
  POST /gateway/pix/receive            create a charge, returns transactionId + QR data
  GET  /gateway/transactions/{id}      current status of a charge

Any transport failure, non-2xx answer or malformed body surfaces as
GatewayError (HTTP 502); callers persist nothing in that case.
"""

import logging
from typing import Any

import httpx

from config.settings import settings
from src.cr_common.errors import GatewayError
from src.cr_common.money import calculate_split, cents_to_reais
from src.cr_payment.domain.models import GatewayCharge, PayerInfo

logger = logging.getLogger(__name__)

# Split only applies above R$ 10,00
_SPLIT_MIN_TOTAL_CENTS = 1000


class VizzionPayGateway:
    """Stateless client; a fresh AsyncClient per call keeps it safe across event loops."""

    def __init__(
        self,
        base_url: str | None = None,
        public_key: str | None = None,
        secret_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.PIX_GATEWAY_BASE_URL).rstrip("/")
        self._public_key = public_key if public_key is not None else settings.PIX_PUBLIC_KEY
        self._secret_key = secret_key if secret_key is not None else settings.PIX_SECRET_KEY
        self._timeout = timeout or settings.PIX_GATEWAY_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "x-public-key": self._public_key,
                "x-secret-key": self._secret_key,
            },
        )

    def build_charge_body(
        self, identifier: str, amount_cents: int, payer: PayerInfo, callback_url: str
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "identifier": identifier,
            "amount": cents_to_reais(amount_cents),
            "client": {
                "name": payer.name,
                "email": payer.email,
                "phone": payer.phone,
                "document": payer.document,
            },
            "callbackUrl": callback_url,
        }
        if settings.PIX_SPLIT_PRODUCER_ID and amount_cents > _SPLIT_MIN_TOTAL_CENTS:
            split_cents = calculate_split(amount_cents, settings.PIX_SPLIT_RATE_BPS)
            if split_cents > 0:
                body["splits"] = [
                    {
                        "producerId": settings.PIX_SPLIT_PRODUCER_ID,
                        "amount": cents_to_reais(split_cents),
                    }
                ]
        return body

    async def create_payment(
        self,
        identifier: str,
        amount_cents: int,
        payer: PayerInfo,
        callback_url: str,
    ) -> GatewayCharge:
        body = self.build_charge_body(identifier, amount_cents, payer, callback_url)
        data = await self._request("POST", "/gateway/pix/receive", json=body)

        transaction_id = data.get("transactionId")
        if not transaction_id or not isinstance(transaction_id, str):
            logger.error("Gateway response without transactionId: identifier=%s", identifier)
            raise GatewayError("Payment gateway returned no transaction id")

        pix = data.get("pix") or {}
        return GatewayCharge(
            transaction_id=transaction_id,
            qr_code=pix.get("code") or data.get("qrCode") or data.get("copyPaste"),
            qr_code_base64=pix.get("base64") or data.get("qrCodeBase64"),
            due_date=data.get("dueDate"),
        )

    async def get_payment_status(self, transaction_id: str) -> str | None:
        data = await self._request("GET", f"/gateway/transactions/{transaction_id}")
        status = data.get("status")
        if status is None and isinstance(data.get("transaction"), dict):
            status = data["transaction"].get("status")
        return str(status).upper() if status else None

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Gateway unreachable: %s %s: %s", method, path, exc)
            raise GatewayError() from exc

        if response.is_error:
            logger.warning(
                "Gateway error: %s %s -> %s %s",
                method, path, response.status_code, response.text[:200],
            )
            raise GatewayError(f"Payment gateway answered {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned malformed data") from exc
        if not isinstance(data, dict):
            raise GatewayError("Payment gateway returned malformed data")
        return data
