"""Printer opcodes and the per-job command buffer."""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from escpos.printer import Dummy


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Style:
    bold: Optional[bool] = None
    double_height: Optional[bool] = None
    font: Optional[str] = None


@dataclass(frozen=True)
class Align:
    align: str


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class TableRow:
    """Two-column row laid out to ``left_width + right_width`` characters."""

    left: str
    right: str
    left_width: int
    right_width: int

    @property
    def lines(self) -> Tuple[str, ...]:
        """Printed lines; cells are never cut, they wrap instead."""
        width = self.left_width + self.right_width
        if len(self.left) + 1 + len(self.right) <= width:
            return (self.left + self.right.rjust(width - len(self.left)),)
        return (self.left, self.right.rjust(width))

    @property
    def line(self) -> str:
        return "\n".join(self.lines)


@dataclass(frozen=True)
class Feed:
    lines: int = 1


@dataclass(frozen=True)
class Rule:
    width: int
    char: str = "-"


@dataclass(frozen=True)
class Cut:
    pass


@dataclass(frozen=True)
class DrawerPulse:
    pin: int = 2


@dataclass(frozen=True)
class Raw:
    data: bytes


Opcode = Union[Reset, Style, Align, Text, TableRow, Feed, Rule, Cut, DrawerPulse, Raw]


class CommandBuffer:
    """Append-only opcode list, encoded to ESC/POS bytes once."""

    def __init__(self):
        self._ops: List[Opcode] = []
        self._sealed = False

    def append(self, op: Opcode) -> "CommandBuffer":
        if self._sealed:
            raise RuntimeError("Command buffer already flushed")
        self._ops.append(op)
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __iter__(self) -> Iterator[Opcode]:
        return iter(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def __eq__(self, other) -> bool:
        return isinstance(other, CommandBuffer) and self._ops == other._ops

    def encode(self) -> bytes:
        """Serialize the opcodes to ESC/POS without sealing the buffer."""
        p = Dummy()
        for op in self._ops:
            _emit(p, op)
        return p.output

    def flush(self) -> bytes:
        """Seal the buffer and return its bytes for dispatch."""
        self._sealed = True
        return self.encode()


def _emit(p: Dummy, op: Opcode) -> None:
    if isinstance(op, Reset):
        p.hw("INIT")
        p.set(
            align="left",
            font="a",
            bold=False,
            underline=0,
            normal_textsize=True,
        )
    elif isinstance(op, Style):
        options = {}
        if op.bold is not None:
            options["bold"] = op.bold
        if op.font is not None:
            options["font"] = op.font
        if op.double_height:
            options["double_height"] = True
        elif op.double_height is not None:
            options["normal_textsize"] = True
        p.set(**options)
    elif isinstance(op, Align):
        p.set(align=op.align)
    elif isinstance(op, Text):
        p.textln(op.text)
    elif isinstance(op, TableRow):
        for line in op.lines:
            p.textln(line)
    elif isinstance(op, Feed):
        p.ln(op.lines)
    elif isinstance(op, Rule):
        p.textln(op.char * op.width)
    elif isinstance(op, Cut):
        p.cut()
    elif isinstance(op, DrawerPulse):
        p.cashdraw(op.pin)
    elif isinstance(op, Raw):
        p._raw(op.data)
    else:
        raise TypeError(f"Unknown printer opcode: {op!r}")
