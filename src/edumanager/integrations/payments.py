# src/edumanager/integrations/payments.py
"""
Flutterwave payment gateway adapter.

``FlutterwaveGateway`` speaks the Flutterwave v3 REST API over httpx and
raises ``PaymentGatewayError`` on transport or API failures.
``PaymentService`` wraps it for callers: it applies the role gate, tracks
payments in an in-memory ``PaymentLedger`` and returns ``Result`` values.
"""
from __future__ import annotations

import secrets
import string
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from edumanager.analytics.aggregation import PaymentSummary, payment_summary
from edumanager.auth.context import CallerContext
from edumanager.exceptions import (
    ConfigurationError,
    EduManagerError,
    NotAuthenticatedError,
    PaymentGatewayError,
    PermissionDeniedError,
    ValidationError,
)
from edumanager.observability import get_logger, observability_context
from edumanager.repositories.policy import Action, Entity, can
from edumanager.result import Result
from edumanager.schemas.enums import PaymentStatus
from edumanager.schemas.records import PaymentRecord
from edumanager.settings import Settings, get_settings

logger = get_logger(__name__)

PAYMENT_OPTIONS = "card,banktransfer,ussd,mobilemoney"
PAYMENT_TITLE = "EduManager School Fees"

_TX_ALPHABET = string.ascii_lowercase + string.digits


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------
class Customer(BaseModel):
    email: str
    name: str
    phone_number: Optional[str] = None


class Customizations(BaseModel):
    title: str
    description: str
    logo: Optional[str] = None


class PaymentDescriptor(BaseModel):
    """Body of ``POST /payments``."""

    amount: float = Field(..., gt=0)
    currency: str = "NGN"
    email: str
    name: str
    tx_ref: str
    redirect_url: str
    phone_number: Optional[str] = None
    payment_options: Optional[str] = None
    customer: Optional[Customer] = None
    customizations: Optional[Customizations] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class PaymentInitResult(BaseModel):
    status: str
    message: str = ""
    link: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success" and bool(self.link)


class VerificationResult(BaseModel):
    status: str
    message: str = ""
    transaction_id: Optional[str] = None
    tx_ref: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    payment_status: Optional[str] = None

    @property
    def successful(self) -> bool:
        return self.status == "success" and self.payment_status == "successful"


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------
class FlutterwaveGateway:
    def __init__(
        self,
        secret_key: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._secret_key = secret_key or self._settings.FLUTTERWAVE_SECRET_KEY
        if not self._secret_key:
            raise ConfigurationError(
                "FLUTTERWAVE_SECRET_KEY", "Flutterwave secret key not configured"
            )
        self._base_url = self._settings.FLUTTERWAVE_BASE_URL.rstrip("/")
        self._timeout = self._settings.FLUTTERWAVE_TIMEOUT_SECONDS
        self._client = client

    def generate_tx_ref(self) -> str:
        suffix = "".join(secrets.choice(_TX_ALPHABET) for _ in range(9))
        return f"edumanager_{int(time.time() * 1000)}_{suffix}"

    def create_school_fee_payment(
        self,
        student_id: str,
        student_name: str,
        student_email: str,
        amount: float,
        currency: str = "NGN",
        description: str = "School Fees Payment",
    ) -> PaymentDescriptor:
        return PaymentDescriptor(
            amount=amount,
            currency=currency,
            email=student_email,
            name=student_name,
            tx_ref=self.generate_tx_ref(),
            redirect_url=self._settings.payment_redirect_url,
            payment_options=PAYMENT_OPTIONS,
            customer=Customer(email=student_email, name=student_name),
            customizations=Customizations(
                title=PAYMENT_TITLE,
                description=description,
                logo=self._settings.payment_logo_url,
            ),
            meta={"student_id": student_id},
        )

    async def initialize(self, descriptor: PaymentDescriptor) -> PaymentInitResult:
        body = await self._request(
            "POST", "/payments", json=descriptor.model_dump(mode="json", exclude_none=True)
        )
        data = body.get("data") or {}
        result = PaymentInitResult(
            status=body.get("status", "error"),
            message=body.get("message", ""),
            link=data.get("link"),
        )
        logger.info(f"Initialized payment {descriptor.tx_ref}: {result.status}")
        return result

    async def verify(self, transaction_id: str) -> VerificationResult:
        if not transaction_id:
            raise ValidationError("Transaction ID is required", field="transaction_id")
        body = await self._request("GET", f"/transactions/{transaction_id}/verify")
        data = body.get("data") or {}
        result = VerificationResult(
            status=body.get("status", "error"),
            message=body.get("message", ""),
            transaction_id=str(data.get("id", transaction_id)),
            tx_ref=data.get("tx_ref"),
            amount=data.get("amount"),
            currency=data.get("currency"),
            payment_status=data.get("status"),
        )
        logger.info(f"Verified transaction {transaction_id}: {result.payment_status}")
        return result

    async def _request(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._secret_key}",
            "Content-Type": "application/json",
        }
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, json=json, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Flutterwave {method} {path} failed: {e}")
            raise PaymentGatewayError(f"Flutterwave request failed: {e}", cause=e) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            raise PaymentGatewayError(
                body.get("message") or f"Flutterwave returned HTTP {response.status_code}",
                status_code=response.status_code,
                context={"path": path},
            )
        return body


# ---------------------------------------------------------------------------
# Ledger and service
# ---------------------------------------------------------------------------
class PaymentLedger:
    """In-memory payment tracking, keyed by tx_ref."""

    def __init__(self) -> None:
        self._payments: Dict[str, PaymentRecord] = {}

    def add(self, payment: PaymentRecord) -> PaymentRecord:
        self._payments[payment.tx_ref] = payment
        return payment

    def get(self, tx_ref: str) -> Optional[PaymentRecord]:
        return self._payments.get(tx_ref)

    def mark(
        self, tx_ref: str, status: PaymentStatus, transaction_id: Optional[str] = None
    ) -> Optional[PaymentRecord]:
        payment = self._payments.get(tx_ref)
        if payment is None:
            return None
        updated = payment.model_copy(update={"status": status, "transaction_id": transaction_id})
        self._payments[tx_ref] = updated
        return updated

    def all(self) -> List[PaymentRecord]:
        return sorted(self._payments.values(), key=lambda p: p.created_at, reverse=True)


class PaymentService:
    def __init__(self, gateway: FlutterwaveGateway, ledger: Optional[PaymentLedger] = None) -> None:
        self._gateway = gateway
        self.ledger = ledger or PaymentLedger()

    async def request_school_fee(
        self,
        caller: CallerContext,
        student_id: str,
        student_name: str,
        student_email: str,
        amount: float,
        currency: str = "NGN",
        description: str = "School Fees Payment",
    ) -> Result[PaymentRecord]:
        """Create a payment link for a student's fees and track it as pending."""
        with observability_context(
            caller_id=caller.caller_id, role=caller.role.value, operation="payments.create"
        ):
            denied = self._guard(caller, Action.CREATE)
            if denied is not None:
                return Result.failure(denied)

            try:
                if amount <= 0:
                    raise ValidationError("Amount must be greater than 0", field="amount")
                descriptor = self._gateway.create_school_fee_payment(
                    student_id, student_name, student_email, amount, currency, description
                )
                init = await self._gateway.initialize(descriptor)
                if not init.ok:
                    raise PaymentGatewayError(init.message or "Failed to initialize payment")
            except EduManagerError as e:
                logger.error(f"Error creating payment: {e}")
                return Result.failure(e)

            payment = self.ledger.add(
                PaymentRecord(
                    tx_ref=descriptor.tx_ref,
                    student_id=student_id,
                    student_name=student_name,
                    email=student_email,
                    amount=amount,
                    currency=currency,
                    description=description,
                    link=init.link,
                )
            )
            return Result.success(payment)

    async def confirm(
        self, caller: CallerContext, tx_ref: str, transaction_id: str
    ) -> Result[PaymentRecord]:
        """Verify a transaction and settle the matching ledger entry."""
        with observability_context(
            caller_id=caller.caller_id, role=caller.role.value, operation="payments.confirm"
        ):
            denied = self._guard(caller, Action.CREATE)
            if denied is not None:
                return Result.failure(denied)
            if self.ledger.get(tx_ref) is None:
                return Result.failure(ValidationError(f"Unknown payment {tx_ref}", field="tx_ref"))

            try:
                verification = await self._gateway.verify(transaction_id)
            except EduManagerError as e:
                logger.error(f"Error verifying payment {tx_ref}: {e}")
                return Result.failure(e)

            settled = verification.successful and verification.tx_ref in (None, tx_ref)
            status = PaymentStatus.COMPLETED if settled else PaymentStatus.FAILED
            payment = self.ledger.mark(tx_ref, status, verification.transaction_id)
            logger.info(f"Payment {tx_ref} {status.value}")
            return Result.success(payment)

    def list_payments(self, caller: CallerContext) -> Result[List[PaymentRecord]]:
        denied = self._guard(caller, Action.READ)
        if denied is not None:
            return Result.failure(denied)
        return Result.success(self.ledger.all())

    def summary(self, caller: CallerContext) -> Result[PaymentSummary]:
        payments = self.list_payments(caller)
        if not payments.ok:
            return Result.failure(payments.error)
        return Result.success(payment_summary(payments.data))

    @staticmethod
    def _guard(caller: CallerContext, action: Action) -> Optional[EduManagerError]:
        if not caller.is_authenticated:
            return NotAuthenticatedError(operation=f"payments.{action.value}")
        if not can(caller.role, action, Entity.PAYMENTS):
            return PermissionDeniedError(caller.role.value, action.value, Entity.PAYMENTS.value)
        return None
