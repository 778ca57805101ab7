"""Sale ticket -> command buffer."""

from datetime import datetime
from typing import Callable, Optional

from pos_print.commands import (
    Align,
    CommandBuffer,
    Cut,
    DrawerPulse,
    Feed,
    Reset,
    Rule,
    Style,
    TableRow,
    Text,
)
from pos_print.config import DEFAULT_COMPANY_NAME, DRAWER_PIN, FOOTER_LINES
from pos_print.models import DiscountKind, LineItem, SaleTicket
from pos_print.profile import WidthProfile

CURRENCY = "Bs."

PAYMENT_METHODS = {
    "CASH_MONEY": "Efectivo",
    "CARD": "Tarjeta",
    "TRANSFER": "Transferencia",
    "CASH_REFUND": "Devolucion",
}


def format_money(amount: float) -> str:
    return f"{CURRENCY}{amount:.2f}"


def format_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.strftime("%d/%m/%Y %H:%M")


def discounted_unit_price(item: LineItem, exchange_rate: float) -> float:
    """Unit price in USD after the line discount."""
    if item.discount <= 0:
        return item.price
    if item.discount_kind is DiscountKind.FIXED_USD:
        return max(0.0, item.price - item.discount)
    if item.discount_kind is DiscountKind.FIXED_LOCAL:
        return max(0.0, item.price - item.discount / exchange_rate)
    if item.discount_kind is DiscountKind.PERCENT:
        return item.price * (1 - item.discount)
    return item.price


def discount_label(item: LineItem, exchange_rate: float) -> Optional[str]:
    if item.discount <= 0 or item.discount_kind is DiscountKind.NONE:
        return None
    if item.discount_kind is DiscountKind.FIXED_USD:
        return f"Desc: -{format_money(item.discount * exchange_rate)}"
    if item.discount_kind is DiscountKind.FIXED_LOCAL:
        return f"Desc: -{format_money(item.discount)}"
    return f"Desc: -{item.discount * 100:.0f}%"


def global_discount_local(ticket: SaleTicket) -> float:
    """Global discount in local currency.

    Percentages apply to subtotal plus taxes, not the bare subtotal.
    """
    rate = ticket.exchange_rate
    if ticket.global_discount <= 0 or ticket.global_discount_kind is DiscountKind.NONE:
        return 0.0
    if ticket.global_discount_kind is DiscountKind.FIXED_USD:
        return ticket.global_discount * rate
    if ticket.global_discount_kind is DiscountKind.FIXED_LOCAL:
        return ticket.global_discount
    base = ticket.subtotal + sum(tax.amount for tax in ticket.taxes)
    return base * ticket.global_discount * rate


class TicketRenderer:
    """Lays a sale ticket out for one paper width."""

    def __init__(self, profile: WidthProfile, clock: Optional[Callable[[], datetime]] = None):
        self.profile = profile
        self.clock = clock or datetime.now
        self.buf = CommandBuffer()

    def row(self, left: str, right: str) -> None:
        left_width, right_width = self.profile.column_widths()
        self.buf.append(TableRow(left, right, left_width, right_width))

    def line(self, text: str) -> None:
        self.buf.append(Text(text))

    def rule(self) -> None:
        self.buf.append(Rule(self.profile.chars_per_line))

    def render(self, ticket: SaleTicket) -> CommandBuffer:
        self.buf.append(Reset())
        self._header(ticket)
        self._metadata(ticket)
        for item in ticket.lines:
            self._item(item, ticket.exchange_rate)
        self._totals(ticket)
        self._payments(ticket)
        self._footer()
        return self.buf

    def _header(self, ticket: SaleTicket) -> None:
        compact = self.profile.compact_font
        self.buf.append(Align("center"))
        self.buf.append(Style(bold=True, font="b" if compact else "a", double_height=not compact))
        self.line(ticket.company_name or DEFAULT_COMPANY_NAME)
        self.buf.append(Style(bold=False, double_height=False))

        if ticket.company_address:
            self.line(ticket.company_address)
        if ticket.company_phone:
            self.line(f"Tel: {ticket.company_phone}")
        if ticket.company_tax_id:
            self.line(f"RIF: {ticket.company_tax_id}")

        self.buf.append(Style(font="a"))
        self.buf.append(Feed())
        self.rule()

    def _metadata(self, ticket: SaleTicket) -> None:
        self.buf.append(Align("left"))
        self.buf.append(Style(bold=True))
        self.line(f"TICKET #{ticket.ticket_number or 'N/A'}")
        self.buf.append(Style(bold=False))
        self.line(f"Fecha: {format_date(ticket.date or self.clock())}")
        self.line(
            f"Cajero: {ticket.cashier_name or 'N/A'} | "
            f"Cliente: {ticket.customer_name or 'Publico General'}"
        )
        if ticket.notes.strip():
            self.rule()
            self.line(f"Nota: {ticket.notes}")
        self.rule()

    def _item(self, item: LineItem, rate: float) -> None:
        unit_price = discounted_unit_price(item, rate)
        line_total = item.quantity * unit_price * rate

        self.buf.append(Style(bold=True))
        self.line(self.profile.truncate(item.product_name))
        self.buf.append(Style(bold=False))

        qty = f"{item.quantity:.{self.profile.qty_decimals}f}"
        self.row(f"{qty} x {format_money(item.price * rate)}", format_money(line_total))

        label = discount_label(item, rate)
        if label:
            self.line(f"  {label}")

    def _totals(self, ticket: SaleTicket) -> None:
        rate = ticket.exchange_rate
        self.rule()
        self.row("Subtotal:", format_money(ticket.subtotal * rate))
        for tax in ticket.taxes:
            self.row(f"IVA ({tax.percentage * 100:.0f}%):", format_money(tax.amount * rate))
        discount = global_discount_local(ticket)
        if discount > 0:
            self.row("Descuento Global:", f"-{format_money(discount)}")
        self.rule()

        self.buf.append(Style(bold=True, double_height=True))
        self.row("TOTAL:", format_money(ticket.total * rate))
        self.buf.append(Style(bold=False, double_height=False))
        self.rule()

    def _payments(self, ticket: SaleTicket) -> None:
        if not ticket.payments:
            return
        self.buf.append(Style(bold=True))
        self.line("PAGOS:")
        self.buf.append(Style(bold=False))
        for payment in ticket.payments:
            label = PAYMENT_METHODS.get(payment.method, payment.method)
            self.row(label, format_money(payment.amount_local))
        self.rule()

    def _footer(self) -> None:
        self.buf.append(Feed())
        self.buf.append(Align("center"))
        for text in FOOTER_LINES:
            self.line(text)
        self.buf.append(Feed(3))
        self.buf.append(Cut())


def render_ticket(
    ticket: SaleTicket,
    profile: WidthProfile,
    clock: Optional[Callable[[], datetime]] = None,
) -> CommandBuffer:
    """Render a full sale receipt for the given paper profile."""
    return TicketRenderer(profile, clock).render(ticket)


def render_test_page(profile: WidthProfile, clock: Optional[Callable[[], datetime]] = None) -> CommandBuffer:
    """Short page confirming the printer accepts jobs."""
    clock = clock or datetime.now
    buf = CommandBuffer()
    buf.append(Reset())
    buf.append(Align("center"))
    buf.append(Style(bold=True))
    buf.append(Text("PRUEBA DE IMPRESORA"))
    buf.append(Style(bold=False))
    buf.append(Feed())
    buf.append(Align("left"))
    buf.append(Text(f"Fecha: {format_date(clock())}"))
    buf.append(Text(f"Papel: {profile.width_mm}mm ({profile.chars_per_line} col)"))
    buf.append(Text("Conexion exitosa!"))
    buf.append(Feed(2))
    buf.append(Cut())
    return buf


def render_drawer_pulse(pin: int = DRAWER_PIN) -> CommandBuffer:
    buf = CommandBuffer()
    buf.append(Reset())
    buf.append(DrawerPulse(pin))
    return buf
