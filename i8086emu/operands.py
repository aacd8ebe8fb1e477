"""Operand access, Mod R/M addressing, the stack and interrupt entry."""

from __future__ import annotations

from dataclasses import dataclass

from i8086emu.state import ADDRESS_MASK, CpuState, Reg16, Segment

_BASE_REGISTERS = (
    (Reg16.BX, Reg16.SI),
    (Reg16.BX, Reg16.DI),
    (Reg16.BP, Reg16.SI),
    (Reg16.BP, Reg16.DI),
    (Reg16.SI,),
    (Reg16.DI,),
    (Reg16.BP,),
    (Reg16.BX,),
)


@dataclass(frozen=True)
class RegisterOperand:
    """A general register selected by its 3-bit encoding."""

    cpu: CpuState
    index: int
    wide: bool

    def read(self) -> int:
        if self.wide:
            return self.cpu.reg16(self.index)
        return self.cpu.reg8(self.index)

    def write(self, value: int) -> None:
        if self.wide:
            self.cpu.set_reg16(self.index, value)
        else:
            self.cpu.set_reg8(self.index, value)

    def following(self) -> RegisterOperand:
        """The word register stored right after this one."""
        if not self.wide:
            raise ValueError("only a word register has a following word")
        index = self.index & 7
        if index == Reg16.DI:
            raise ValueError("no register follows DI")
        return RegisterOperand(self.cpu, index + 1, True)


@dataclass(frozen=True)
class MemoryOperand:
    """A byte or word in memory at a 20-bit physical address."""

    cpu: CpuState
    address: int
    wide: bool

    def read(self) -> int:
        if self.wide:
            return self.cpu.bus.read_word(self.address)
        return self.cpu.bus.read_byte(self.address)

    def write(self, value: int) -> None:
        if self.wide:
            self.cpu.bus.write_word(self.address, value & 0xFFFF)
        else:
            self.cpu.bus.write_byte(self.address, value & 0xFF)

    def following(self) -> MemoryOperand:
        """The word stored right after this operand."""
        return MemoryOperand(self.cpu, (self.address + 2) & ADDRESS_MASK, True)


Operand = RegisterOperand | MemoryOperand


def _base_sum(cpu: CpuState) -> int:
    return sum(cpu.reg16(reg) for reg in _BASE_REGISTERS[cpu.modrm.rm])


def base_offset(cpu: CpuState) -> int:
    """The 16-bit base offset named by the r/m field."""
    return _base_sum(cpu) & 0xFFFF


def effective_base_address(cpu: CpuState) -> int:
    """The 20-bit address of the r/m base; forms using BP address the stack."""
    offset = _base_sum(cpu)
    if Reg16.BP in _BASE_REGISTERS[cpu.modrm.rm]:
        return cpu.stack_address(offset)
    return cpu.data_address(offset)


def address_offset(cpu: CpuState) -> int:
    """The 16-bit offset of the memory operand, fetching any displacement."""
    mod = cpu.modrm.mod
    if mod == 0b00:
        if cpu.modrm.rm == 0b110:
            return cpu.fetch_word()
        return base_offset(cpu)
    if mod == 0b01:
        return (base_offset(cpu) + cpu.fetch_byte()) & 0xFFFF
    if mod == 0b10:
        return (base_offset(cpu) + cpu.fetch_word()) & 0xFFFF
    return 0


def effective_address(cpu: CpuState) -> int:
    """The 20-bit address of the memory operand, fetching any displacement."""
    mod = cpu.modrm.mod
    if mod == 0b00:
        if cpu.modrm.rm == 0b110:
            return cpu.data_address(cpu.fetch_word())
        return effective_base_address(cpu)
    if mod == 0b01:
        return (effective_base_address(cpu) + cpu.fetch_byte()) & ADDRESS_MASK
    if mod == 0b10:
        return (effective_base_address(cpu) + cpu.fetch_word()) & ADDRESS_MASK
    return 0


def rm_operand(cpu: CpuState, wide: bool) -> Operand:
    """The operand named by the mod and r/m fields of the current Mod R/M byte."""
    if cpu.modrm.mod == 0b11:
        return RegisterOperand(cpu, cpu.modrm.rm, wide)
    return MemoryOperand(cpu, effective_address(cpu), wide)


def reg_operand(cpu: CpuState, index: int, wide: bool) -> RegisterOperand:
    """A register operand of the given width."""
    return RegisterOperand(cpu, index, wide)


def push_byte(cpu: CpuState, value: int) -> None:
    sp = (cpu.reg16(Reg16.SP) - 1) & 0xFFFF
    cpu.set_reg16(Reg16.SP, sp)
    cpu.bus.write_byte(cpu.stack_address(sp), value & 0xFF)


def pop_byte(cpu: CpuState) -> int:
    sp = cpu.reg16(Reg16.SP)
    value = cpu.bus.read_byte(cpu.stack_address(sp))
    cpu.set_reg16(Reg16.SP, sp + 1)
    return value


def push_word(cpu: CpuState, value: int) -> None:
    sp = (cpu.reg16(Reg16.SP) - 2) & 0xFFFF
    cpu.set_reg16(Reg16.SP, sp)
    cpu.bus.write_word(cpu.stack_address(sp), value & 0xFFFF)


def pop_word(cpu: CpuState) -> int:
    sp = cpu.reg16(Reg16.SP)
    value = cpu.bus.read_word(cpu.stack_address(sp))
    cpu.set_reg16(Reg16.SP, sp + 2)
    return value


def interrupt(cpu: CpuState, vector: int) -> None:
    """Push flags, CS and IP and jump through the interrupt vector table."""
    push_word(cpu, cpu.flags.to_word())
    push_word(cpu, cpu.segments[Segment.CS])
    push_word(cpu, cpu.ip)
    entry = (vector & 0xFF) * 4
    cpu.segments[Segment.CS] = cpu.bus.read_word(entry + 2)
    cpu.ip = cpu.bus.read_word(entry)
    cpu.flags.if_ = 0
    cpu.flags.tf = 0