"""Data transfer, string, I/O and flag instructions."""

from __future__ import annotations

from i8086emu.alu import cmp8, cmp16
from i8086emu.operands import (
    MemoryOperand,
    Operand,
    RegisterOperand,
    address_offset,
    pop_word,
    push_word,
    reg_operand,
    rm_operand,
)
from i8086emu.state import CpuState, ModRM, Reg8, Reg16, Segment

_PUSHF_MASK = 0x7D5
_AH_FLAGS_MASK = 0xD5


def _wide(cpu: CpuState) -> bool:
    return bool(cpu.opcode & 0x1)


def _to_register(cpu: CpuState) -> bool:
    return bool(cpu.opcode & 0x2)


def _segment_field(cpu: CpuState) -> Segment:
    return Segment((cpu.opcode >> 3) & 0x3)


def _operands(cpu: CpuState, wide: bool) -> tuple[Operand, RegisterOperand]:
    """Fetch the Mod R/M byte and return its r/m and reg operands."""
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    rm = rm_operand(cpu, wide)
    return rm, reg_operand(cpu, cpu.modrm.reg, wide)


def _accumulator(cpu: CpuState, wide: bool) -> RegisterOperand:
    return RegisterOperand(cpu, Reg16.AX if wide else Reg8.AL, wide)


def mov_rm_reg(cpu: CpuState) -> None:
    """MOV r/m, reg and MOV reg, r/m (88-8B)."""
    rm, reg = _operands(cpu, _wide(cpu))
    dest, src = (reg, rm) if _to_register(cpu) else (rm, reg)
    dest.write(src.read())


def mov_rm_imm(cpu: CpuState) -> None:
    """MOV r/m, imm (C6/C7)."""
    wide = _wide(cpu)
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    rm = rm_operand(cpu, wide)
    rm.write(cpu.fetch_word() if wide else cpu.fetch_byte())


def mov_reg_imm(cpu: CpuState) -> None:
    """MOV reg, imm (B0-BF)."""
    index = cpu.opcode & 7
    if cpu.opcode & 0x8:
        cpu.set_reg16(index, cpu.fetch_word())
    else:
        cpu.set_reg8(index, cpu.fetch_byte())


def mov_accum_mem(cpu: CpuState) -> None:
    """MOV AL/AX, [mem] and MOV [mem], AL/AX (A0-A3)."""
    wide = _wide(cpu)
    mem = MemoryOperand(cpu, cpu.data_address(cpu.fetch_word()), wide)
    accum = _accumulator(cpu, wide)
    if _to_register(cpu):
        mem.write(accum.read())
    else:
        accum.write(mem.read())


def mov_seg(cpu: CpuState) -> None:
    """MOV r/m, seg and MOV seg, r/m (8C/8E)."""
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    rm = rm_operand(cpu, True)
    segment = cpu.modrm.reg & 3
    if _to_register(cpu):
        cpu.segments[segment] = rm.read() & 0xFFFF
    else:
        rm.write(cpu.segments[segment])


def lea(cpu: CpuState) -> None:
    """LEA reg16, [r/m] (8D)."""
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    cpu.set_reg16(cpu.modrm.reg, address_offset(cpu))


def _load_far_pointer(cpu: CpuState, segment: Segment) -> None:
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    rm = rm_operand(cpu, True)
    cpu.set_reg16(cpu.modrm.reg, rm.read())
    cpu.segments[segment] = rm.following().read() & 0xFFFF


def les(cpu: CpuState) -> None:
    """LES reg16, [mem] (C4)."""
    _load_far_pointer(cpu, Segment.ES)


def lds(cpu: CpuState) -> None:
    """LDS reg16, [mem] (C5)."""
    _load_far_pointer(cpu, Segment.DS)


def xchg_rm_reg(cpu: CpuState) -> None:
    """XCHG r/m, reg (86/87)."""
    rm, reg = _operands(cpu, _wide(cpu))
    first, second = rm.read(), reg.read()
    rm.write(second)
    reg.write(first)


def xchg_accum_reg(cpu: CpuState) -> None:
    """XCHG AX, reg16 (91-97)."""
    index = cpu.opcode & 7
    accum, other = cpu.reg16(Reg16.AX), cpu.reg16(index)
    cpu.set_reg16(Reg16.AX, other)
    cpu.set_reg16(index, accum)


def push_seg(cpu: CpuState) -> None:
    """PUSH seg (06/0E/16/1E)."""
    push_word(cpu, cpu.segments[_segment_field(cpu)])


def pop_seg(cpu: CpuState) -> None:
    """POP seg (07/0F/17/1F)."""
    cpu.segments[_segment_field(cpu)] = pop_word(cpu)


def push_reg(cpu: CpuState) -> None:
    """PUSH reg16 (50-57)."""
    push_word(cpu, cpu.reg16(cpu.opcode & 7))


def pop_reg(cpu: CpuState) -> None:
    """POP reg16 (58-5F)."""
    cpu.set_reg16(cpu.opcode & 7, pop_word(cpu))


def push_rm(cpu: CpuState) -> None:
    """PUSH r/m16 (FF /6); the Mod R/M byte is already decoded."""
    push_word(cpu, rm_operand(cpu, True).read())


def pop_rm(cpu: CpuState) -> None:
    """POP r/m16 (8F)."""
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    rm = rm_operand(cpu, True)
    rm.write(pop_word(cpu))


def pushf(cpu: CpuState) -> None:
    """PUSHF (9C)."""
    cpu.flags.load_word(cpu.flags.to_word() & _PUSHF_MASK)
    push_word(cpu, cpu.flags.to_word())


def popf(cpu: CpuState) -> None:
    """POPF (9D)."""
    cpu.flags.load_word(pop_word(cpu) & _PUSHF_MASK)


def sahf(cpu: CpuState) -> None:
    """SAHF (9E)."""
    word = cpu.flags.to_word() & 0xFF00
    cpu.flags.load_word(word | (cpu.reg8(Reg8.AH) & _AH_FLAGS_MASK))


def lahf(cpu: CpuState) -> None:
    """LAHF (9F)."""
    cpu.set_reg8(Reg8.AH, cpu.flags.to_word() & _AH_FLAGS_MASK)


def cbw(cpu: CpuState) -> None:
    """CBW (98): sign-extend AL into AH."""
    cpu.set_reg8(Reg8.AH, 0xFF if cpu.reg8(Reg8.AL) & 0x80 else 0)


def cwd(cpu: CpuState) -> None:
    """CWD (99): sign-extend AX into DX."""
    cpu.set_reg16(Reg16.DX, 0xFFFF if cpu.reg16(Reg16.AX) & 0x8000 else 0)


def xlat(cpu: CpuState) -> None:
    """XLAT (D7): AL = [BX + AL]."""
    offset = cpu.reg16(Reg16.BX) + cpu.reg8(Reg8.AL)
    cpu.set_reg8(Reg8.AL, cpu.bus.read_byte(cpu.data_address(offset)))


def _advance(cpu: CpuState, index: Reg16, wide: bool) -> None:
    size = 2 if wide else 1
    step = -size if cpu.flags.df else size
    cpu.set_reg16(index, cpu.reg16(index) + step)


def _repeat(cpu: CpuState, compares: bool = False) -> bool:
    if cpu.rep_prefix is None:
        return False
    count = (cpu.reg16(Reg16.CX) - 1) & 0xFFFF
    cpu.set_reg16(Reg16.CX, count)
    if count == 0:
        return False
    return not compares or cpu.flags.zf == cpu.rep_prefix


def _source(cpu: CpuState, wide: bool) -> MemoryOperand:
    return MemoryOperand(cpu, cpu.data_address(cpu.reg16(Reg16.SI)), wide)


def _destination(cpu: CpuState, wide: bool) -> MemoryOperand:
    return MemoryOperand(cpu, cpu.extra_address(cpu.reg16(Reg16.DI)), wide)


def movs(cpu: CpuState) -> bool:
    """MOVS (A4/A5). True when a REP prefix asks for another iteration."""
    wide = _wide(cpu)
    _destination(cpu, wide).write(_source(cpu, wide).read())
    _advance(cpu, Reg16.SI, wide)
    _advance(cpu, Reg16.DI, wide)
    return _repeat(cpu)


def stos(cpu: CpuState) -> bool:
    """STOS (AA/AB). True when a REP prefix asks for another iteration."""
    wide = _wide(cpu)
    _destination(cpu, wide).write(_accumulator(cpu, wide).read())
    _advance(cpu, Reg16.DI, wide)
    return _repeat(cpu)


def lods(cpu: CpuState) -> bool:
    """LODS (AC/AD). True when a REP prefix asks for another iteration."""
    wide = _wide(cpu)
    _accumulator(cpu, wide).write(_source(cpu, wide).read())
    _advance(cpu, Reg16.SI, wide)
    return _repeat(cpu)


def cmps(cpu: CpuState) -> bool:
    """CMPS (A6/A7). True when a REP prefix asks for another iteration."""
    wide = _wide(cpu)
    compare = cmp16 if wide else cmp8
    compare(cpu.flags, _source(cpu, wide).read(), _destination(cpu, wide).read())
    _advance(cpu, Reg16.SI, wide)
    _advance(cpu, Reg16.DI, wide)
    return _repeat(cpu, compares=True)


def scas(cpu: CpuState) -> bool:
    """SCAS (AE/AF). True when a REP prefix asks for another iteration."""
    wide = _wide(cpu)
    compare = cmp16 if wide else cmp8
    compare(cpu.flags, _accumulator(cpu, wide).read(), _destination(cpu, wide).read())
    _advance(cpu, Reg16.DI, wide)
    return _repeat(cpu, compares=True)


def _port_in(cpu: CpuState, port: int) -> None:
    if _wide(cpu):
        cpu.set_reg16(Reg16.AX, cpu.bus.read_io_word(port))
    else:
        cpu.set_reg8(Reg8.AL, cpu.bus.read_io_byte(port))


def _port_out(cpu: CpuState, port: int) -> None:
    if _wide(cpu):
        cpu.bus.write_io_word(port, cpu.reg16(Reg16.AX))
    else:
        cpu.bus.write_io_byte(port, cpu.reg8(Reg8.AL))


def in_accum_imm(cpu: CpuState) -> None:
    """IN AL/AX, imm8 (E4/E5)."""
    _port_in(cpu, cpu.fetch_byte())


def out_accum_imm(cpu: CpuState) -> None:
    """OUT imm8, AL/AX (E6/E7)."""
    _port_out(cpu, cpu.fetch_byte())


def in_accum_dx(cpu: CpuState) -> None:
    """IN AL/AX, DX (EC/ED)."""
    _port_in(cpu, cpu.reg16(Reg16.DX))


def out_accum_dx(cpu: CpuState) -> None:
    """OUT DX, AL/AX (EE/EF)."""
    _port_out(cpu, cpu.reg16(Reg16.DX))


def cmc(cpu: CpuState) -> None:
    cpu.flags.cf ^= 1


def clc(cpu: CpuState) -> None:
    cpu.flags.cf = 0


def stc(cpu: CpuState) -> None:
    cpu.flags.cf = 1


def cli(cpu: CpuState) -> None:
    cpu.flags.if_ = 0


def sti(cpu: CpuState) -> None:
    cpu.flags.if_ = 1


def cld(cpu: CpuState) -> None:
    cpu.flags.df = 0


def std(cpu: CpuState) -> None:
    cpu.flags.df = 1