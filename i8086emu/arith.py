"""Arithmetic, logic, decimal-adjust, shift and multiply/divide instructions."""

from __future__ import annotations

from typing import Callable, Optional

from i8086emu import alu
from i8086emu.operands import Operand, RegisterOperand, reg_operand, rm_operand
from i8086emu.state import CpuState, Flags, ModRM, Reg8, Reg16

BinaryOp = Callable[[Flags, int, int], Optional[int]]
ShiftOp = Callable[[Flags, int, int], int]

# Indexed by bits 3-5 of the opcode (00-3F) or the reg field of 80-83.
_BINARY_OPS: tuple[tuple[BinaryOp, BinaryOp], ...] = (
    (alu.add8, alu.add16),
    (alu.or8, alu.or16),
    (alu.adc8, alu.adc16),
    (alu.sbb8, alu.sbb16),
    (alu.and8, alu.and16),
    (alu.sub8, alu.sub16),
    (alu.xor8, alu.xor16),
    (alu.cmp8, alu.cmp16),
)

_SHIFT_OPS: dict[int, tuple[ShiftOp, ShiftOp]] = {
    0b000: (alu.rol8, alu.rol16),
    0b001: (alu.ror8, alu.ror16),
    0b010: (alu.rcl8, alu.rcl16),
    0b011: (alu.rcr8, alu.rcr16),
    0b100: (alu.shl8, alu.shl16),
    0b101: (alu.shr8, alu.shr16),
    0b111: (alu.sar8, alu.sar16),
}


def _wide(cpu: CpuState) -> bool:
    return bool(cpu.opcode & 0x1)


def _decode_modrm(cpu: CpuState) -> None:
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())


def _accumulator(cpu: CpuState, wide: bool) -> RegisterOperand:
    return RegisterOperand(cpu, Reg16.AX if wide else Reg8.AL, wide)


def _fetch_immediate(cpu: CpuState, wide: bool) -> int:
    return cpu.fetch_word() if wide else cpu.fetch_byte()


def _apply(cpu: CpuState, index: int, dest: Operand, value: int, wide: bool) -> None:
    operation = _BINARY_OPS[index][int(wide)]
    result = operation(cpu.flags, dest.read(), value)
    if result is not None:
        dest.write(result)


def _signed8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def _signed16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _signed32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _truncating_divmod(dividend: int, divisor: int) -> tuple[int, int]:
    """Division rounding toward zero; the remainder takes the dividend's sign."""
    if divisor == 0:
        raise ZeroDivisionError("divide by zero")
    quotient = abs(dividend) // abs(divisor)
    if (dividend < 0) != (divisor < 0):
        quotient = -quotient
    return quotient, dividend - quotient * divisor


def binary_rm_reg(cpu: CpuState) -> None:
    """ADD/OR/ADC/SBB/AND/SUB/XOR/CMP between r/m and reg (00-3B)."""
    wide = _wide(cpu)
    _decode_modrm(cpu)
    rm = rm_operand(cpu, wide)
    reg = reg_operand(cpu, cpu.modrm.reg, wide)
    dest, src = (reg, rm) if cpu.opcode & 0x2 else (rm, reg)
    _apply(cpu, (cpu.opcode >> 3) & 7, dest, src.read(), wide)


def binary_accum_imm(cpu: CpuState) -> None:
    """ADD/OR/ADC/SBB/AND/SUB/XOR/CMP between AL/AX and an immediate."""
    wide = _wide(cpu)
    imm = _fetch_immediate(cpu, wide)
    _apply(cpu, (cpu.opcode >> 3) & 7, _accumulator(cpu, wide), imm, wide)


def binary_rm_imm(cpu: CpuState) -> None:
    """The 80-83 group: an ALU operation between r/m and an immediate.

    Only opcode 81 takes a word immediate; the others take a byte,
    which is zero-extended for word operands.
    """
    wide = _wide(cpu)
    _decode_modrm(cpu)
    rm = rm_operand(cpu, wide)
    imm = cpu.fetch_word() if cpu.opcode & 0x3 == 0b01 else cpu.fetch_byte()
    _apply(cpu, cpu.modrm.reg, rm, imm, wide)


def test_rm_reg(cpu: CpuState) -> None:
    """TEST r/m, reg (84/85)."""
    wide = _wide(cpu)
    _decode_modrm(cpu)
    rm = rm_operand(cpu, wide)
    reg = reg_operand(cpu, cpu.modrm.reg, wide)
    operation = alu.test16 if wide else alu.test8
    operation(cpu.flags, rm.read(), reg.read())


def test_accum_imm(cpu: CpuState) -> None:
    """TEST AL/AX, imm (A8/A9)."""
    wide = _wide(cpu)
    imm = _fetch_immediate(cpu, wide)
    operation = alu.test16 if wide else alu.test8
    operation(cpu.flags, _accumulator(cpu, wide).read(), imm)


def inc_reg(cpu: CpuState) -> None:
    """INC reg16 (40-47)."""
    index = cpu.opcode & 7
    cpu.set_reg16(index, alu.inc16(cpu.flags, cpu.reg16(index)))


def dec_reg(cpu: CpuState) -> None:
    """DEC reg16 (48-4F)."""
    index = cpu.opcode & 7
    cpu.set_reg16(index, alu.dec16(cpu.flags, cpu.reg16(index)))


def inc_rm(cpu: CpuState) -> None:
    """INC r/m (FE/FF /0); the Mod R/M byte is already decoded."""
    wide = _wide(cpu)
    operand = rm_operand(cpu, wide)
    operation = alu.inc16 if wide else alu.inc8
    operand.write(operation(cpu.flags, operand.read()))


def dec_rm(cpu: CpuState) -> None:
    """DEC r/m (FE/FF /1); the Mod R/M byte is already decoded."""
    wide = _wide(cpu)
    operand = rm_operand(cpu, wide)
    operation = alu.dec16 if wide else alu.dec8
    operand.write(operation(cpu.flags, operand.read()))


def _decimal_correction(cpu: CpuState) -> int:
    al = cpu.reg8(Reg8.AL)
    correction = 0
    if (al & 0x0F) > 9 or cpu.flags.af:
        correction |= 0x06
        cpu.flags.af = 1
    if al > 0x9F or cpu.flags.cf:
        correction |= 0x60
        cpu.flags.cf = 1
    return correction


def daa(cpu: CpuState) -> None:
    """DAA (27): decimal adjust AL after addition."""
    correction = _decimal_correction(cpu)
    cpu.set_reg8(Reg8.AL, alu.add8(cpu.flags, cpu.reg8(Reg8.AL), correction))


def das(cpu: CpuState) -> None:
    """DAS (2F): decimal adjust AL after subtraction."""
    correction = _decimal_correction(cpu)
    cpu.set_reg8(Reg8.AL, alu.sub8(cpu.flags, cpu.reg8(Reg8.AL), correction))


def _ascii_adjust(cpu: CpuState, step: int) -> None:
    al = cpu.reg8(Reg8.AL)
    if (al & 0x0F) > 9 or cpu.flags.af:
        al += 6 * step
        cpu.set_reg8(Reg8.AH, cpu.reg8(Reg8.AH) + step)
        cpu.flags.af = 1
        cpu.flags.cf = 1
    else:
        cpu.flags.af = 0
        cpu.flags.cf = 0
    cpu.set_reg8(Reg8.AL, al & 0x0F)


def aaa(cpu: CpuState) -> None:
    """AAA (37): ASCII adjust after addition."""
    _ascii_adjust(cpu, 1)


def aas(cpu: CpuState) -> None:
    """AAS (3F): ASCII adjust after subtraction."""
    _ascii_adjust(cpu, -1)


def _result_flags(flags: Flags, overflow_source: int, value: int) -> None:
    flags.cf = int(overflow_source > 0xFF)
    flags.of = int(overflow_source > 0x7F)
    flags.pf = alu.parity8(value)
    flags.sf = (value & 0x80) >> 7
    flags.zf = int(value == 0)


def aam(cpu: CpuState) -> None:
    """AAM (D4 ib): AH = AL / base, AL = AL % base."""
    divisor = cpu.fetch_byte()
    if divisor == 0:
        raise ZeroDivisionError("AAM with a zero base")
    quotient, remainder = divmod(cpu.reg8(Reg8.AL), divisor)
    cpu.set_reg8(Reg8.AH, quotient)
    cpu.set_reg8(Reg8.AL, remainder)
    _result_flags(cpu.flags, quotient, remainder)


def aad(cpu: CpuState) -> None:
    """AAD (D5 ib): AL = AH * base + AL, AH = 0."""
    multiplier = cpu.fetch_byte()
    al = (cpu.reg8(Reg8.AH) * multiplier + cpu.reg8(Reg8.AL)) & 0xFF
    cpu.set_reg8(Reg8.AL, al)
    cpu.set_reg8(Reg8.AH, 0)
    _result_flags(cpu.flags, al, al)


def salc(cpu: CpuState) -> None:
    """SALC (D6): AL = FF when the carry flag is set, else 00."""
    cpu.set_reg8(Reg8.AL, 0xFF if cpu.flags.cf else 0)


def shift_group(cpu: CpuState) -> None:
    """The D0-D3 group of rotates and shifts, by one or by CL."""
    _decode_modrm(cpu)
    operations = _SHIFT_OPS.get(cpu.modrm.reg)
    if operations is None:
        return
    count = cpu.reg8(Reg8.CL) if cpu.opcode & 0x2 else 1
    wide = _wide(cpu)
    operand = rm_operand(cpu, wide)
    operand.write(operations[int(wide)](cpu.flags, operand.read(), count))


def _test_imm(cpu: CpuState, wide: bool) -> None:
    operand = rm_operand(cpu, wide)
    imm = _fetch_immediate(cpu, wide)
    operation = alu.test16 if wide else alu.test8
    operation(cpu.flags, operand.read(), imm)


def _not(cpu: CpuState, wide: bool) -> None:
    register = RegisterOperand(cpu, cpu.modrm.rm, wide)
    register.write(~register.read())


def _neg(cpu: CpuState, wide: bool) -> None:
    register = RegisterOperand(cpu, cpu.modrm.rm, wide)
    register.write(-register.read())


def _mul(cpu: CpuState, wide: bool) -> None:
    factor = rm_operand(cpu, wide).read()
    if wide:
        product = cpu.reg16(Reg16.AX) * factor
        cpu.set_reg16(Reg16.AX, (product >> 16) & 0xFFFF)
        cpu.set_reg16(Reg16.DX, product & 0xFFFF)
    else:
        cpu.set_reg16(Reg16.AX, cpu.reg8(Reg8.AL) * factor)


def _imul(cpu: CpuState, wide: bool) -> None:
    factor = rm_operand(cpu, wide).read()
    if wide:
        product = cpu.reg16(Reg16.AX) * _signed16(factor)
        cpu.set_reg16(Reg16.AX, (product >> 16) & 0xFFFF)
        cpu.set_reg16(Reg16.DX, product & 0xFFFF)
    else:
        cpu.set_reg16(Reg16.AX, _signed8(cpu.reg8(Reg8.AL)) * _signed8(factor))


def _div(cpu: CpuState, wide: bool) -> None:
    divisor = rm_operand(cpu, wide).read()
    if divisor == 0:
        raise ZeroDivisionError("divide by zero")
    if wide:
        dividend = (cpu.reg16(Reg16.AX) << 16) | cpu.reg16(Reg16.DX)
        quotient, remainder = divmod(dividend, divisor)
        cpu.set_reg16(Reg16.AX, quotient)
        cpu.set_reg16(Reg16.DX, remainder)
    else:
        quotient, remainder = divmod(cpu.reg16(Reg16.AX), divisor)
        cpu.set_reg8(Reg8.AH, quotient)
        cpu.set_reg8(Reg8.AL, remainder)


def _idiv(cpu: CpuState, wide: bool) -> None:
    divisor = rm_operand(cpu, wide).read()
    if wide:
        dividend = _signed32((cpu.reg16(Reg16.AX) << 16) | cpu.reg16(Reg16.DX))
        quotient, remainder = _truncating_divmod(dividend, _signed16(divisor))
        cpu.set_reg16(Reg16.AX, quotient)
        cpu.set_reg16(Reg16.DX, remainder)
    else:
        dividend = _signed16(cpu.reg16(Reg16.AX))
        quotient, remainder = _truncating_divmod(dividend, _signed8(divisor))
        cpu.set_reg8(Reg8.AL, quotient)
        cpu.set_reg8(Reg8.AH, remainder)


_UNARY_OPS: dict[int, Callable[[CpuState, bool], None]] = {
    0b000: _test_imm,
    0b010: _not,
    0b011: _neg,
    0b100: _mul,
    0b101: _imul,
    0b110: _div,
    0b111: _idiv,
}


def unary_group(cpu: CpuState) -> None:
    """The F6/F7 group: TEST imm, NOT, NEG, MUL, IMUL, DIV and IDIV.

    Division by zero raises ZeroDivisionError.
    """
    _decode_modrm(cpu)
    operation = _UNARY_OPS.get(cpu.modrm.reg)
    if operation is not None:
        operation(cpu, _wide(cpu))