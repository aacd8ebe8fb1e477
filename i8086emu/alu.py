"""Arithmetic and logic operations.

Every operation updates the flags it is given and returns the new value.
"""

from __future__ import annotations

from i8086emu.state import Flags


def parity8(value: int) -> int:
    """1 when the low byte holds an odd number of set bits, else 0."""
    return bin(value & 0xFF).count("1") & 1


def parity16(value: int) -> int:
    """1 when the word holds an odd number of set bits, else 0."""
    return bin(value & 0xFFFF).count("1") & 1


def _result8(flags: Flags, value: int, overflow: bool = True) -> int:
    if overflow:
        flags.of = int(value > 0x7F)
    flags.sf = (value & 0x80) >> 7
    flags.pf = parity8(value)
    flags.zf = int(value == 0)
    return value


def _result16(flags: Flags, value: int, overflow: bool = True) -> int:
    if overflow:
        flags.of = int(value > 0x7FFF)
    flags.sf = (value & 0x8000) >> 15
    flags.pf = parity16(value)
    flags.zf = int(value == 0)
    return value


def _aux_add(a: int, b: int, total: int) -> int:
    return int(((a ^ b ^ total) & 0x10) == 0x10)


def _aux_sub(a: int, b: int, total: int) -> int:
    return int(((a ^ b ^ total) & 0x10) == 0)


def _logic8(flags: Flags, value: int) -> int:
    flags.cf = 0
    flags.of = 0
    return _result8(flags, value, overflow=False)


def _logic16(flags: Flags, value: int) -> int:
    flags.cf = 0
    flags.of = 0
    return _result16(flags, value, overflow=False)


# 8-bit


def add8(flags: Flags, a: int, b: int) -> int:
    total = a + b
    flags.af = _aux_add(a, b, total)
    flags.cf = int(total > 0xFF)
    return _result8(flags, total & 0xFF)


def adc8(flags: Flags, a: int, b: int) -> int:
    total = a + b + flags.cf
    flags.af = _aux_add(a, b, total)
    flags.cf = int(total > 0xFF)
    return _result8(flags, total & 0xFF)


def sub8(flags: Flags, a: int, b: int) -> int:
    total = (a - b) & 0xFFFF
    flags.af = _aux_sub(a, b, total)
    flags.cf = int(total > 0xFF)
    return _result8(flags, total & 0xFF)


def sbb8(flags: Flags, a: int, b: int) -> int:
    total = (a - b - flags.cf) & 0xFFFF
    flags.af = _aux_sub(a, b, total)
    flags.cf = int(total > 0xFF)
    return _result8(flags, total & 0xFF)


def inc8(flags: Flags, a: int) -> int:
    total = a + 1
    flags.af = _aux_add(a, 1, total)
    return _result8(flags, total & 0xFF)


def dec8(flags: Flags, a: int) -> int:
    total = (a - 1) & 0xFFFF
    flags.af = _aux_sub(a, 1, total)
    return _result8(flags, total & 0xFF)


def cmp8(flags: Flags, a: int, b: int) -> None:
    """Set the flags of a - b without keeping the result."""
    sub8(flags, a, b)


def test8(flags: Flags, a: int, b: int) -> None:
    """Set the flags of a & b without keeping the result."""
    and8(flags, a, b)


def and8(flags: Flags, a: int, b: int) -> int:
    return _logic8(flags, (a & b) & 0xFF)


def or8(flags: Flags, a: int, b: int) -> int:
    return _logic8(flags, (a | b) & 0xFF)


def xor8(flags: Flags, a: int, b: int) -> int:
    return _logic8(flags, (a ^ b) & 0xFF)


def rcl8(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        carry_in = flags.cf
        flags.cf = (value >> 7) & 1
        flags.of = int(flags.cf != ((value >> 6) & 1))
        value = ((value << 1) | carry_in) & 0xFF
    return value


def rcr8(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        carry_in = flags.cf
        flags.cf = value & 1
        flags.of = int(flags.cf != ((value >> 7) & 1))
        value = ((value >> 1) | (carry_in << 7)) & 0xFF
    return value


def rol8(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        flags.cf = (value >> 7) & 1
        value = ((value << 1) | flags.cf) & 0xFF
    return value


def ror8(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        flags.cf = value & 1
        value = ((value >> 1) | (flags.cf << 7)) & 0xFF
    return value


def shl8(flags: Flags, value: int, count: int) -> int:
    count &= 0xFF
    if count == 0:
        return value
    for _ in range(count):
        flags.cf = (value >> 7) & 1
        flags.of = int(flags.cf != ((value >> 6) & 1))
        value = (value << 1) & 0xFF
    return _result8(flags, value, overflow=False)


def shr8(flags: Flags, value: int, count: int) -> int:
    count &= 0xFF
    if count == 0:
        return value
    for _ in range(count):
        flags.cf = value & 1
        flags.of = (value >> 7) & 1
        value >>= 1
    return _result8(flags, value, overflow=False)


def sar8(flags: Flags, value: int, count: int) -> int:
    count &= 0xFF
    if count == 0:
        return value
    for _ in range(count):
        flags.cf = value & 1
        kept = value & 7
        value = (value >> 1) | kept
    _result8(flags, value, overflow=False)
    flags.of = 0
    return value


# 16-bit


def add16(flags: Flags, a: int, b: int) -> int:
    total = a + b
    flags.af = _aux_add(a, b, total)
    flags.cf = int(total > 0xFFFF)
    return _result16(flags, total & 0xFFFF)


def adc16(flags: Flags, a: int, b: int) -> int:
    total = a + b + flags.cf
    flags.af = _aux_add(a, b, total)
    flags.cf = int(total > 0xFFFF)
    return _result16(flags, total & 0xFFFF)


def sub16(flags: Flags, a: int, b: int) -> int:
    total = (a - b) & 0xFFFFFFFF
    flags.af = _aux_sub(a, b, total)
    flags.cf = int(total > 0xFFFF)
    return _result16(flags, total & 0xFFFF)


def sbb16(flags: Flags, a: int, b: int) -> int:
    total = (a - b - flags.cf) & 0xFFFFFFFF
    flags.af = _aux_sub(a, b, total)
    flags.cf = int(total > 0xFFFF)
    return _result16(flags, total & 0xFFFF)


def inc16(flags: Flags, a: int) -> int:
    total = a + 1
    flags.af = _aux_add(a, 1, total)
    return _result16(flags, total & 0xFFFF)


def dec16(flags: Flags, a: int) -> int:
    total = (a - 1) & 0xFFFFFFFF
    flags.af = _aux_sub(a, 1, total)
    return _result16(flags, total & 0xFFFF)


def cmp16(flags: Flags, a: int, b: int) -> None:
    """Set the flags of a - b without keeping the result."""
    sub16(flags, a, b)


def test16(flags: Flags, a: int, b: int) -> None:
    """Set the flags of a & b without keeping the result."""
    and16(flags, a, b)


def and16(flags: Flags, a: int, b: int) -> int:
    return _logic16(flags, (a & b) & 0xFFFF)


def or16(flags: Flags, a: int, b: int) -> int:
    return _logic16(flags, (a | b) & 0xFFFF)


def xor16(flags: Flags, a: int, b: int) -> int:
    return _logic16(flags, (a ^ b) & 0xFFFF)


def rcl16(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        carry_in = flags.cf
        flags.cf = (value >> 15) & 1
        flags.of = int(flags.cf != ((value >> 14) & 1))
        value = ((value << 1) | carry_in) & 0xFFFF
    return value


def rcr16(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        carry_in = flags.cf
        flags.cf = value & 1
        flags.of = int(flags.cf != ((value >> 15) & 1))
        value = ((value >> 1) | (carry_in << 15)) & 0xFFFF
    return value


def rol16(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        flags.cf = (value >> 15) & 1
        value = ((value << 1) | flags.cf) & 0xFFFF
    return value


def ror16(flags: Flags, value: int, count: int) -> int:
    for _ in range(count & 0xFF):
        flags.cf = value & 1
        value = ((value >> 1) | (flags.cf << 15)) & 0xFFFF
    return value


def shl16(flags: Flags, value: int, count: int) -> int:
    count &= 0xFF
    if count == 0:
        return value
    for _ in range(count):
        flags.cf = (value >> 15) & 1
        flags.of = int(flags.cf == ((value >> 14) & 1))
        value = (value << 1) & 0xFFFF
    return _result16(flags, value, overflow=False)


def shr16(flags: Flags, value: int, count: int) -> int:
    count &= 0xFF
    if count == 0:
        return value
    for _ in range(count):
        flags.cf = value & 1
        flags.of = (value >> 15) & 1
        value >>= 1
    return _result16(flags, value, overflow=False)


def sar16(flags: Flags, value: int, count: int) -> int:
    count &= 0xFF
    if count == 0:
        return value
    for _ in range(count):
        flags.cf = value & 1
        kept = value & 15
        value = (value >> 1) | kept
    _result16(flags, value, overflow=False)
    flags.of = 0
    return value