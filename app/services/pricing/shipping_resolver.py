# app/services/pricing/shipping_resolver.py
from dataclasses import dataclass
from typing import Optional, Sequence

from app.core.exceptions import MethodUnavailableError, RequestValidationFailed


@dataclass
class ResolvedShipping:
    code: str
    name: str
    fee: int


class ShippingFeeResolver:
    """Maps a shipping method code to its fee against a catalog of methods."""

    def __init__(self, methods: Sequence):
        # Catalog order decides the default
        self.methods = sorted(methods, key=lambda m: (m.sort_order or 0, m.id))

    def _active(self):
        return [m for m in self.methods if m.is_active]

    def resolve(self, code: Optional[str], *, allow_default: bool = False) -> ResolvedShipping:
        """
        Resolve the fee for a method.

        Only preview may fall back to the first active method; order
        creation must name one explicitly.
        """
        if not code:
            if not allow_default:
                raise RequestValidationFailed(
                    "A shipping method is required.",
                    details={"field": "shippingMethod"},
                )
            active = self._active()
            if not active:
                raise MethodUnavailableError("No shipping method is currently available.")
            method = active[0]
            return ResolvedShipping(code=method.code, name=method.name, fee=method.price)

        method = next((m for m in self.methods if m.code == code), None)
        if method is None or not method.is_active:
            raise MethodUnavailableError(
                f"Shipping method '{code}' is not available.",
                details={"shippingMethod": code},
            )
        return ResolvedShipping(code=method.code, name=method.name, fee=method.price)
