"""Jumps, calls, returns, loops, interrupts and processor control."""

from __future__ import annotations

from typing import Callable

from i8086emu.operands import interrupt, pop_word, push_word, rm_operand
from i8086emu.state import Condition, CpuState, Flags, ModRM, Reg16, Segment

_CONDITIONS: dict[Condition, Callable[[Flags], bool]] = {
    Condition.O: lambda f: bool(f.of),
    Condition.NO: lambda f: not f.of,
    Condition.C: lambda f: bool(f.cf),
    Condition.NC: lambda f: not f.cf,
    Condition.Z: lambda f: bool(f.zf),
    Condition.NZ: lambda f: not f.zf,
    Condition.BE: lambda f: bool(f.cf or f.zf),
    Condition.A: lambda f: not f.cf and not f.zf,
    Condition.S: lambda f: bool(f.sf),
    Condition.NS: lambda f: not f.sf,
    Condition.PE: lambda f: bool(f.pf),
    Condition.PO: lambda f: not f.pf,
    Condition.L: lambda f: f.sf != f.of,
    Condition.GE: lambda f: f.sf == f.of,
    Condition.LE: lambda f: bool(f.zf) or f.sf != f.of,
    Condition.G: lambda f: not f.zf and f.sf == f.of,
}


def _signed8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def _jump_relative(cpu: CpuState, displacement: int) -> None:
    cpu.ip = (cpu.ip + displacement) & 0xFFFF


def _fetch_short(cpu: CpuState) -> int:
    return _signed8(cpu.fetch_byte())


def condition_met(cpu: CpuState, condition: int) -> bool:
    """Whether the flags satisfy a 4-bit jump condition."""
    return _CONDITIONS[Condition(condition & 0xF)](cpu.flags)


def jcc(cpu: CpuState) -> None:
    """Conditional short jump (70-7F; 60-6F decode the same)."""
    displacement = _fetch_short(cpu)
    if condition_met(cpu, cpu.opcode & 0x0F):
        _jump_relative(cpu, displacement)


def jmp_short(cpu: CpuState) -> None:
    """JMP rel8 (EB)."""
    _jump_relative(cpu, _fetch_short(cpu))


def jmp_near(cpu: CpuState) -> None:
    """JMP rel16 (E9)."""
    _jump_relative(cpu, cpu.fetch_word())


def jmp_far(cpu: CpuState) -> None:
    """JMP offset:segment (EA)."""
    offset = cpu.fetch_word()
    segment = cpu.fetch_word()
    cpu.ip = offset
    cpu.segments[Segment.CS] = segment


def jmp_near_indirect(cpu: CpuState) -> None:
    """JMP r/m16 (FF /4); the Mod R/M byte is already decoded."""
    cpu.ip = rm_operand(cpu, True).read() & 0xFFFF


def jmp_far_indirect(cpu: CpuState) -> None:
    """JMP far [r/m] (FF /5); the Mod R/M byte is already decoded."""
    target = rm_operand(cpu, True)
    cpu.ip = target.read() & 0xFFFF
    cpu.segments[Segment.CS] = target.following().read() & 0xFFFF


def call_near(cpu: CpuState) -> None:
    """CALL rel16 (E8)."""
    displacement = cpu.fetch_word()
    push_word(cpu, cpu.ip)
    _jump_relative(cpu, displacement)


def call_far(cpu: CpuState) -> None:
    """CALL offset:segment (9A)."""
    offset = cpu.fetch_word()
    segment = cpu.fetch_word()
    push_word(cpu, cpu.segments[Segment.CS])
    push_word(cpu, cpu.ip)
    cpu.ip = offset
    cpu.segments[Segment.CS] = segment


def call_near_indirect(cpu: CpuState) -> None:
    """CALL r/m16 (FF /2); IP is pushed before any displacement is fetched."""
    push_word(cpu, cpu.ip)
    cpu.ip = rm_operand(cpu, True).read() & 0xFFFF


def call_far_indirect(cpu: CpuState) -> None:
    """CALL far [r/m] (FF /3); CS and IP are pushed before any displacement."""
    push_word(cpu, cpu.segments[Segment.CS])
    push_word(cpu, cpu.ip)
    target = rm_operand(cpu, True)
    cpu.ip = target.read() & 0xFFFF
    cpu.segments[Segment.CS] = target.following().read() & 0xFFFF


def ret_near(cpu: CpuState) -> None:
    """RET (C3; C1 decodes the same)."""
    cpu.ip = pop_word(cpu)


def ret_near_imm(cpu: CpuState) -> None:
    """RET imm16 (C2; C0 decodes the same)."""
    release = cpu.fetch_word()
    cpu.ip = pop_word(cpu)
    cpu.set_reg16(Reg16.SP, cpu.reg16(Reg16.SP) + release)


def ret_far(cpu: CpuState) -> None:
    """RETF (CB; C9 decodes the same)."""
    cpu.ip = pop_word(cpu)
    cpu.segments[Segment.CS] = pop_word(cpu)


def ret_far_imm(cpu: CpuState) -> None:
    """RETF imm16 (CA; C8 decodes the same)."""
    release = cpu.fetch_word()
    cpu.ip = pop_word(cpu)
    cpu.segments[Segment.CS] = pop_word(cpu)
    cpu.set_reg16(Reg16.SP, cpu.reg16(Reg16.SP) + release)


def _count_down(cpu: CpuState) -> int:
    count = (cpu.reg16(Reg16.CX) - 1) & 0xFFFF
    cpu.set_reg16(Reg16.CX, count)
    return count


def loopnz(cpu: CpuState) -> None:
    """LOOPNZ rel8 (E0)."""
    displacement = _fetch_short(cpu)
    if _count_down(cpu) and not cpu.flags.zf:
        _jump_relative(cpu, displacement)


def loopz(cpu: CpuState) -> None:
    """LOOPZ rel8 (E1)."""
    displacement = _fetch_short(cpu)
    if _count_down(cpu) and cpu.flags.zf:
        _jump_relative(cpu, displacement)


def loop(cpu: CpuState) -> None:
    """LOOP rel8 (E2)."""
    displacement = _fetch_short(cpu)
    if _count_down(cpu):
        _jump_relative(cpu, displacement)


def jcxz(cpu: CpuState) -> None:
    """JCXZ rel8 (E3)."""
    displacement = _fetch_short(cpu)
    if cpu.reg16(Reg16.CX) == 0:
        _jump_relative(cpu, displacement)


def int_(cpu: CpuState) -> None:
    """INT 3 (CC) and INT imm8 (CD)."""
    vector = cpu.fetch_byte() if cpu.opcode & 0x1 else 3
    interrupt(cpu, vector)


def into(cpu: CpuState) -> None:
    """INTO (CE): interrupt 4 when the overflow flag is set."""
    if cpu.flags.of:
        interrupt(cpu, 4)


def iret(cpu: CpuState) -> None:
    """IRET (CF): pop IP, CS and the flags."""
    cpu.ip = pop_word(cpu)
    cpu.segments[Segment.CS] = pop_word(cpu)
    cpu.flags.load_word(pop_word(cpu))


def hlt(cpu: CpuState) -> None:
    """HLT (F4): stay on this instruction."""
    cpu.ip = (cpu.ip - 1) & 0xFFFF


def wait(cpu: CpuState) -> None:
    """WAIT (9B): stay on this instruction until the TEST line is asserted."""
    if not cpu.test_line:
        cpu.ip = (cpu.ip - 1) & 0xFFFF


def esc(cpu: CpuState) -> None:
    """ESC (D8-DF): decode and skip the coprocessor operand."""
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    if cpu.modrm.mod != 0b11:
        rm_operand(cpu, True)