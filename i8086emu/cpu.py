"""The processor: fetch, decode and execute."""

from __future__ import annotations

from typing import Callable, Optional

from i8086emu import arith, control, transfer
from i8086emu.state import Bus, CpuState, ModRM, Segment

Handler = Callable[[CpuState], Optional[bool]]


def _segment_override(cpu: CpuState) -> bool:
    cpu.segment_prefix = Segment((cpu.opcode >> 3) & 0x3)
    cpu.opcode = cpu.fetch_byte()
    return True


def _rep(cpu: CpuState) -> bool:
    cpu.rep_prefix = cpu.opcode & 0x1
    cpu.opcode = cpu.fetch_byte()
    return True


def _lock(cpu: CpuState) -> bool:
    cpu.opcode = cpu.fetch_byte()
    return True


_GROUP_FE: dict[int, Handler] = {
    0b000: arith.inc_rm,
    0b001: arith.dec_rm,
    0b010: control.call_near_indirect,
    0b011: control.call_far_indirect,
    0b100: control.jmp_near_indirect,
    0b101: control.jmp_far_indirect,
    0b110: transfer.push_rm,
}


def _group_fe(cpu: CpuState) -> None:
    cpu.modrm = ModRM.from_byte(cpu.fetch_byte())
    handler = _GROUP_FE.get(cpu.modrm.reg)
    if handler is not None:
        handler(cpu)


def _build_table() -> dict[int, Handler]:
    table: dict[int, Handler] = {}

    def assign(opcodes, handler: Handler) -> None:
        for opcode in opcodes:
            table[opcode] = handler

    for base in range(0x00, 0x40, 0x08):
        assign(range(base, base + 4), arith.binary_rm_reg)
        assign((base + 4, base + 5), arith.binary_accum_imm)
        table[base + 6] = _segment_override if base >= 0x20 else transfer.push_seg
        table[base + 7] = transfer.pop_seg
    table[0x27] = arith.daa
    table[0x2F] = arith.das
    table[0x37] = arith.aaa
    table[0x3F] = arith.aas

    assign(range(0x40, 0x48), arith.inc_reg)
    assign(range(0x48, 0x50), arith.dec_reg)
    assign(range(0x50, 0x58), transfer.push_reg)
    assign(range(0x58, 0x60), transfer.pop_reg)
    assign(range(0x60, 0x80), control.jcc)

    assign(range(0x80, 0x84), arith.binary_rm_imm)
    assign((0x84, 0x85), arith.test_rm_reg)
    assign((0x86, 0x87), transfer.xchg_rm_reg)
    assign(range(0x88, 0x8C), transfer.mov_rm_reg)
    assign((0x8C, 0x8E), transfer.mov_seg)
    table[0x8D] = transfer.lea
    table[0x8F] = transfer.pop_rm

    # 0x90 (NOP) is XCHG AX, AX, which leaves every register unchanged.
    assign(range(0x90, 0x98), transfer.xchg_accum_reg)
    table[0x98] = transfer.cbw
    table[0x99] = transfer.cwd
    table[0x9A] = control.call_far
    table[0x9B] = control.wait
    table[0x9C] = transfer.pushf
    table[0x9D] = transfer.popf
    table[0x9E] = transfer.sahf
    table[0x9F] = transfer.lahf

    assign(range(0xA0, 0xA4), transfer.mov_accum_mem)
    assign((0xA4, 0xA5), transfer.movs)
    assign((0xA6, 0xA7), transfer.cmps)
    assign((0xA8, 0xA9), arith.test_accum_imm)
    assign((0xAA, 0xAB), transfer.stos)
    assign((0xAC, 0xAD), transfer.lods)
    assign((0xAE, 0xAF), transfer.scas)
    assign(range(0xB0, 0xC0), transfer.mov_reg_imm)

    assign((0xC0, 0xC2), control.ret_near_imm)
    assign((0xC1, 0xC3), control.ret_near)
    table[0xC4] = transfer.les
    table[0xC5] = transfer.lds
    assign((0xC6, 0xC7), transfer.mov_rm_imm)
    assign((0xC8, 0xCA), control.ret_far_imm)
    assign((0xC9, 0xCB), control.ret_far)
    assign((0xCC, 0xCD), control.int_)
    table[0xCE] = control.into
    table[0xCF] = control.iret

    assign(range(0xD0, 0xD4), arith.shift_group)
    table[0xD4] = arith.aam
    table[0xD5] = arith.aad
    table[0xD6] = arith.salc
    table[0xD7] = transfer.xlat
    assign(range(0xD8, 0xE0), control.esc)

    table[0xE0] = control.loopnz
    table[0xE1] = control.loopz
    table[0xE2] = control.loop
    table[0xE3] = control.jcxz
    assign((0xE4, 0xE5), transfer.in_accum_imm)
    assign((0xE6, 0xE7), transfer.out_accum_imm)
    table[0xE8] = control.call_near
    table[0xE9] = control.jmp_near
    table[0xEA] = control.jmp_far
    table[0xEB] = control.jmp_short
    assign((0xEC, 0xED), transfer.in_accum_dx)
    assign((0xEE, 0xEF), transfer.out_accum_dx)

    table[0xF0] = _lock
    assign((0xF2, 0xF3), _rep)
    table[0xF4] = control.hlt
    table[0xF5] = transfer.cmc
    assign((0xF6, 0xF7), arith.unary_group)
    table[0xF8] = transfer.clc
    table[0xF9] = transfer.stc
    table[0xFA] = transfer.cli
    table[0xFB] = transfer.sti
    table[0xFC] = transfer.cld
    table[0xFD] = transfer.std
    assign((0xFE, 0xFF), _group_fe)
    return table


_OPCODES = _build_table()


def _decode(cpu: CpuState) -> bool:
    """Execute the current opcode; True when it must be decoded again."""
    handler = _OPCODES.get(cpu.opcode)
    if handler is None:
        return False
    return bool(handler(cpu))


class I8086(CpuState):
    """An 8086 processor attached to a memory and I/O bus."""

    def __init__(self, bus: Bus) -> None:
        super().__init__(bus=bus)

    def step(self) -> None:
        """Fetch and execute one instruction, including its prefixes and repeats."""
        self.modrm = ModRM()
        self.segment_prefix = None
        self.rep_prefix = None
        self.opcode = self.fetch_byte()
        while _decode(self):
            pass

    def run(self, steps: int) -> None:
        """Execute a number of instructions."""
        for _ in range(steps):
            self.step()