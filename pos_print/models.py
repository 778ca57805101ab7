"""Sale ticket input model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class DiscountKind(Enum):
    NONE = "NONE"
    FIXED_USD = "FIXED"
    FIXED_LOCAL = "FIXED_VES"
    PERCENT = "PERCENT"

    @classmethod
    def from_code(cls, code) -> "DiscountKind":
        """Map a POS discount code; unknown or missing codes are percentages."""
        code = (code or "").strip().upper()
        if code in ("FIXED", "FIXED_USD"):
            return cls.FIXED_USD
        if code in ("FIXED_VES", "FIXED_LOCAL"):
            return cls.FIXED_LOCAL
        if code == "NONE":
            return cls.NONE
        return cls.PERCENT


def _num(value, default: float = 0.0) -> float:
    try:
        return float(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def _text(value) -> str:
    return "" if value is None else str(value)


def _date(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    # JSON dates from the POS front end end in "Z"
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class LineItem:
    product_name: str
    quantity: float
    price: float  # USD
    discount: float = 0.0
    discount_kind: DiscountKind = DiscountKind.NONE

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            product_name=_text(data.get("product_name")),
            quantity=_num(data.get("units")),
            price=_num(data.get("price")),
            discount=_num(data.get("discount")),
            discount_kind=DiscountKind.from_code(data.get("discount_type")),
        )


@dataclass(frozen=True)
class Tax:
    percentage: float
    amount: float  # USD

    @classmethod
    def from_dict(cls, data: dict) -> "Tax":
        return cls(_num(data.get("percentage")), _num(data.get("amount")))


@dataclass(frozen=True)
class Payment:
    method: str
    amount_local: float

    @classmethod
    def from_dict(cls, data: dict) -> "Payment":
        return cls(_text(data.get("payment")), _num(data.get("amount_base_currency")))


@dataclass(frozen=True)
class SaleTicket:
    ticket_number: str = ""
    date: Optional[datetime] = None
    company_name: str = ""
    company_address: str = ""
    company_phone: str = ""
    company_tax_id: str = ""
    cashier_name: str = ""
    customer_name: str = ""
    notes: str = ""
    lines: Tuple[LineItem, ...] = field(default_factory=tuple)
    taxes: Tuple[Tax, ...] = field(default_factory=tuple)
    payments: Tuple[Payment, ...] = field(default_factory=tuple)
    subtotal: float = 0.0
    total: float = 0.0
    global_discount: float = 0.0
    global_discount_kind: DiscountKind = DiscountKind.NONE
    exchange_rate: float = 1.0

    @classmethod
    def from_dict(cls, data: dict) -> "SaleTicket":
        """Build a ticket from the POS front end's JSON body."""
        return cls(
            ticket_number=_text(data.get("ticket_number")),
            date=_date(data.get("date")),
            company_name=_text(data.get("company_name")),
            company_address=_text(data.get("company_address")),
            company_phone=_text(data.get("company_phone")),
            company_tax_id=_text(data.get("company_tax_id")),
            cashier_name=_text(data.get("cashier_name")),
            customer_name=_text(data.get("customer_name")),
            notes=_text(data.get("notes")),
            lines=tuple(LineItem.from_dict(d) for d in data.get("lines") or ()),
            taxes=tuple(Tax.from_dict(d) for d in data.get("taxes") or ()),
            payments=tuple(Payment.from_dict(d) for d in data.get("payments") or ()),
            subtotal=_num(data.get("subtotal")),
            total=_num(data.get("total")),
            global_discount=_num(data.get("globalDiscount")),
            global_discount_kind=DiscountKind.from_code(data.get("globalDiscountType")),
            exchange_rate=_num(data.get("exchange_rate"), 1.0) or 1.0,
        )
