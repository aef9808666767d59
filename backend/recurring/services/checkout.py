"""Checkout abstraction for installments.

Charging a payment method and creating an order happen outside this
service; a checkout backend only reports what happened.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from recurring.models.installment import Installment, InstallmentLineItem


@dataclass
class CheckoutOutcome:
    """Result reported by a checkout backend for one installment."""

    success: bool
    message: str | None = None
    order_reference: str | None = None


class CheckoutBase(ABC):
    """Abstract base class for checkout backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the backend name."""
        pass  # pragma: no cover

    @abstractmethod
    def process(
        self, installment: Installment, line_items: list[InstallmentLineItem]
    ) -> CheckoutOutcome:
        """Execute payment and fulfillment for the installment.

        May raise; the caller decides whether the error propagates.
        """
        pass  # pragma: no cover


class ManualCheckout(CheckoutBase):
    """Checkout for manually fulfilled subscriptions.

    Accepts every installment and leaves payment collection to an operator.
    """

    @property
    def name(self) -> str:
        return "manual"

    def process(
        self, installment: Installment, line_items: list[InstallmentLineItem]
    ) -> CheckoutOutcome:
        if not line_items:
            return CheckoutOutcome(success=False, message="Installment has no line items")
        return CheckoutOutcome(
            success=True,
            message="Awaiting manual fulfillment",
            order_reference=f"manual-{installment.id}",
        )


def get_checkout(name: str) -> CheckoutBase:
    """Factory function to get the configured checkout backend."""
    backends: dict[str, type[CheckoutBase]] = {
        "manual": ManualCheckout,
    }

    backend_class = backends.get(name)
    if not backend_class:
        raise ValueError(f"Unsupported checkout backend: {name}")

    return backend_class()
