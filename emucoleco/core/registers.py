"""
Z80 register file.

Two physical banks hold A, F, B, C, D, E, H and L.  Two independent
selectors choose which bank is live: ``register_set`` for B/C/D/E/H/L
(toggled by EXX) and ``math_set`` for A/F (toggled by EX AF,AF').  Every
accessor branches on its selector, so swapping banks is a single boolean
flip.

The unbanked state (IX, IY, SP, PC, I, R, the interrupt flip-flops and
request lines, the interrupt mode and the halted flag) lives alongside,
together with the per-scanline T-state budget the CPU counts down.
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple


class RegisterFile:
    """All architectural state of the Z80, plus the scanline budget."""

    DEFAULT_PERIOD: int = 228

    def __init__(self, instruction_period: int = DEFAULT_PERIOD) -> None:
        self.default_period: int = instruction_period
        self.reset()

    def reset(self) -> None:
        # Bank 1
        self.a1 = self.f1 = self.b1 = self.c1 = 0
        self.d1 = self.e1 = self.h1 = self.l1 = 0
        # Bank 2 (the primed registers while the selectors are False)
        self.a2 = self.f2 = self.b2 = self.c2 = 0
        self.d2 = self.e2 = self.h2 = self.l2 = 0

        self.register_set: bool = False
        self.math_set: bool = False

        self.ix: int = 0
        self.iy: int = 0
        self.sp: int = 0
        self.pc: int = 0
        self.i: int = 0
        self.r: int = 0

        self.iff1: bool = False
        self.iff2: bool = False
        self.nmi: bool = False
        self.int: bool = False
        self.int_mode: int = 0
        self.halted: bool = False

        self.instruction_period: int = self.default_period
        self.instruction_count: int = self.default_period

    # ------------------------------------------------------------------
    # A / F (math_set)
    # ------------------------------------------------------------------

    @property
    def a(self) -> int:
        return self.a2 if self.math_set else self.a1

    @a.setter
    def a(self, value: int) -> None:
        if self.math_set:
            self.a2 = value & 0xFF
        else:
            self.a1 = value & 0xFF

    @property
    def f(self) -> int:
        return self.f2 if self.math_set else self.f1

    @f.setter
    def f(self, value: int) -> None:
        if self.math_set:
            self.f2 = value & 0xFF
        else:
            self.f1 = value & 0xFF

    # ------------------------------------------------------------------
    # B / C / D / E / H / L (register_set)
    # ------------------------------------------------------------------

    @property
    def b(self) -> int:
        return self.b2 if self.register_set else self.b1

    @b.setter
    def b(self, value: int) -> None:
        if self.register_set:
            self.b2 = value & 0xFF
        else:
            self.b1 = value & 0xFF

    @property
    def c(self) -> int:
        return self.c2 if self.register_set else self.c1

    @c.setter
    def c(self, value: int) -> None:
        if self.register_set:
            self.c2 = value & 0xFF
        else:
            self.c1 = value & 0xFF

    @property
    def d(self) -> int:
        return self.d2 if self.register_set else self.d1

    @d.setter
    def d(self, value: int) -> None:
        if self.register_set:
            self.d2 = value & 0xFF
        else:
            self.d1 = value & 0xFF

    @property
    def e(self) -> int:
        return self.e2 if self.register_set else self.e1

    @e.setter
    def e(self, value: int) -> None:
        if self.register_set:
            self.e2 = value & 0xFF
        else:
            self.e1 = value & 0xFF

    @property
    def h(self) -> int:
        return self.h2 if self.register_set else self.h1

    @h.setter
    def h(self, value: int) -> None:
        if self.register_set:
            self.h2 = value & 0xFF
        else:
            self.h1 = value & 0xFF

    @property
    def l(self) -> int:  # noqa: E743
        return self.l2 if self.register_set else self.l1

    @l.setter
    def l(self, value: int) -> None:  # noqa: E743
        if self.register_set:
            self.l2 = value & 0xFF
        else:
            self.l1 = value & 0xFF

    # ------------------------------------------------------------------
    # 16-bit pairs
    # ------------------------------------------------------------------

    @property
    def af(self) -> int:
        return (self.a << 8) | self.f

    @af.setter
    def af(self, value: int) -> None:
        self.a = value >> 8
        self.f = value

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value

    # ------------------------------------------------------------------
    # Bank swaps
    # ------------------------------------------------------------------

    def exx(self) -> None:
        self.register_set = not self.register_set

    def ex_af(self) -> None:
        self.math_set = not self.math_set

    # ------------------------------------------------------------------
    # Refresh register: the low 7 bits count opcode fetches, bit 7 is
    # only changed by LD R,A.
    # ------------------------------------------------------------------

    def increment_r(self) -> None:
        self.r = (self.r & 0x80) | ((self.r + 1) & 0x7F)

    # ------------------------------------------------------------------
    # String-keyed access (test harness / debugger surface)
    # ------------------------------------------------------------------

    def get(self, name: str) -> int:
        """Read a register by name.

        Shadow pairs are spelled ``af_prime`` (or ``afPrime``) and read the
        bank that is *not* currently selected.

        Raises:
            KeyError: If *name* is not a register.
        """
        try:
            getter = _ACCESSORS[name][0]
        except KeyError:
            raise KeyError(f"Unknown register: {name!r}") from None
        return int(getter(self))

    def set(self, name: str, value: int) -> None:
        """Write a register by name (see :meth:`get` for the names).

        Raises:
            KeyError: If *name* is not a register.
        """
        try:
            setter = _ACCESSORS[name][1]
        except KeyError:
            raise KeyError(f"Unknown register: {name!r}") from None
        setter(self, value)

    @staticmethod
    def names() -> Tuple[str, ...]:
        return tuple(_ACCESSORS)

    def _swapped(self, pair: str, bank_attr: str) -> int:
        setattr(self, bank_attr, not getattr(self, bank_attr))
        try:
            return getattr(self, pair)
        finally:
            setattr(self, bank_attr, not getattr(self, bank_attr))

    def _set_swapped(self, pair: str, bank_attr: str, value: int) -> None:
        setattr(self, bank_attr, not getattr(self, bank_attr))
        try:
            setattr(self, pair, value & 0xFFFF)
        finally:
            setattr(self, bank_attr, not getattr(self, bank_attr))

    # ------------------------------------------------------------------
    # Serialisation helpers (save-state support)
    # ------------------------------------------------------------------

    _SNAPSHOT_FIELDS: Tuple[str, ...] = (
        "a1", "f1", "b1", "c1", "d1", "e1", "h1", "l1",
        "a2", "f2", "b2", "c2", "d2", "e2", "h2", "l2",
        "register_set", "math_set", "ix", "iy", "sp", "pc", "i", "r",
        "iff1", "iff2", "nmi", "int", "int_mode", "halted",
        "instruction_period", "instruction_count",
    )

    def get_snapshot(self) -> dict:
        return {name: getattr(self, name) for name in self._SNAPSHOT_FIELDS}

    def restore_snapshot(self, snapshot: dict) -> None:
        for name in self._SNAPSHOT_FIELDS:
            setattr(self, name, snapshot[name])

    def __repr__(self) -> str:
        return (
            f"RegisterFile(AF=${self.af:04X}, BC=${self.bc:04X}, "
            f"DE=${self.de:04X}, HL=${self.hl:04X}, IX=${self.ix:04X}, "
            f"IY=${self.iy:04X}, SP=${self.sp:04X}, PC=${self.pc:04X}, "
            f"IM={self.int_mode}, IFF1={self.iff1}, halted={self.halted})"
        )


def _plain(attr: str, mask: int) -> Tuple[Callable, Callable]:
    return (
        lambda rf: getattr(rf, attr),
        lambda rf, v: setattr(rf, attr, v & mask),
    )


def _flag(attr: str) -> Tuple[Callable, Callable]:
    return (
        lambda rf: int(getattr(rf, attr)),
        lambda rf, v: setattr(rf, attr, bool(v)),
    )


def _index_half(attr: str, high: bool) -> Tuple[Callable, Callable]:
    if high:
        return (
            lambda rf: getattr(rf, attr) >> 8,
            lambda rf, v: setattr(rf, attr, ((v & 0xFF) << 8) | (getattr(rf, attr) & 0xFF)),
        )
    return (
        lambda rf: getattr(rf, attr) & 0xFF,
        lambda rf, v: setattr(rf, attr, (getattr(rf, attr) & 0xFF00) | (v & 0xFF)),
    )


def _shadow(pair: str, bank_attr: str) -> Tuple[Callable, Callable]:
    return (
        lambda rf: rf._swapped(pair, bank_attr),
        lambda rf, v: rf._set_swapped(pair, bank_attr, v),
    )


_ACCESSORS: Dict[str, Tuple[Callable, Callable]] = {
    "a": _plain("a", 0xFF),
    "f": _plain("f", 0xFF),
    "b": _plain("b", 0xFF),
    "c": _plain("c", 0xFF),
    "d": _plain("d", 0xFF),
    "e": _plain("e", 0xFF),
    "h": _plain("h", 0xFF),
    "l": _plain("l", 0xFF),
    "ixh": _index_half("ix", True),
    "ixl": _index_half("ix", False),
    "iyh": _index_half("iy", True),
    "iyl": _index_half("iy", False),
    "i": _plain("i", 0xFF),
    "r": _plain("r", 0xFF),
    "af": _plain("af", 0xFFFF),
    "bc": _plain("bc", 0xFFFF),
    "de": _plain("de", 0xFFFF),
    "hl": _plain("hl", 0xFFFF),
    "af_prime": _shadow("af", "math_set"),
    "bc_prime": _shadow("bc", "register_set"),
    "de_prime": _shadow("de", "register_set"),
    "hl_prime": _shadow("hl", "register_set"),
    "ix": _plain("ix", 0xFFFF),
    "iy": _plain("iy", 0xFFFF),
    "sp": _plain("sp", 0xFFFF),
    "pc": _plain("pc", 0xFFFF),
    "memptr": (lambda rf: 0, lambda rf, v: None),
    "iff1": _flag("iff1"),
    "iff2": _flag("iff2"),
    "im": _plain("int_mode", 0x03),
    "halted": _flag("halted"),
}

# camelCase spellings used by existing test vectors
for _name in ("af", "bc", "de", "hl"):
    _ACCESSORS[_name + "Prime"] = _ACCESSORS[_name + "_prime"]
del _name
