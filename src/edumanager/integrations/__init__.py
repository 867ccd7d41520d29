"""
External collaborators: payment gateway and assistant responders.
"""

from .assistant import AssistantService, KeywordResponder, OpenAIResponder, Responder
from .payments import (
    FlutterwaveGateway,
    PaymentDescriptor,
    PaymentInitResult,
    PaymentLedger,
    PaymentService,
    VerificationResult,
)

__all__ = [
    "AssistantService",
    "KeywordResponder",
    "OpenAIResponder",
    "Responder",
    "FlutterwaveGateway",
    "PaymentDescriptor",
    "PaymentInitResult",
    "PaymentLedger",
    "PaymentService",
    "VerificationResult",
]
