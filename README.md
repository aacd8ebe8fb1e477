# i8086emu

An emulator for the Intel 8086 processor. It models the register file,
the segment registers, the program status word, the arithmetic logic unit
and the instruction decoder, including several undocumented opcodes
(`POP CS`, `SALC`, the `60h`–`6Fh` aliases of the conditional jumps and the
`C0h`/`C1h`/`C8h`/`C9h` return aliases).

Memory and I/O are reached through a bus object, so the CPU can be attached
to anything that provides byte and word access to a 20-bit address space and
to I/O ports (the `Bus` protocol). A flat 1 MiB `Memory` is included; its
ports read as `0xFF` until written.

## Installation

```
pip install .
```

## Usage

A new `I8086` has all registers and segments at zero. `reset()` clears the
registers and flags and sets `CS` to `FFFF`, so execution starts at
`FFFF:0000`, physical address `0xFFFF0`:

```python
from i8086emu.cpu import I8086
from i8086emu.state import Memory

memory = Memory()
memory.load(0xFFFF0, bytes([
    0xB0, 0x2A,        # mov al, 2Ah
    0xA2, 0x00, 0x01,  # mov [0100h], al
    0xF4,              # hlt
]))

cpu = I8086(memory)
cpu.reset()
cpu.run(3)

assert memory.read_byte(0x00100) == 0x2A
```

`I8086.step()` executes a single instruction, its prefixes (segment
override, `REP`/`REPZ`/`REPNZ`, `LOCK`) and any repeats included;
`run(steps)` executes a given number of them. `HLT` leaves the instruction
pointer on itself, so further steps keep the CPU halted; `WAIT` does the same
until the `test_line` attribute is set. Opcodes the decoder does not know
do nothing beyond being fetched.

`DIV`, `IDIV` and `AAM` raise `ZeroDivisionError` when the divisor is zero.

Registers are read and written through `reg8`/`set_reg8` and
`reg16`/`set_reg16` with the `Reg8` and `Reg16` encodings, segments through
`cpu.segments[Segment.DS]` and the like, and flags through attributes of
`cpu.flags` (`cf`, `pf`, `af`, `zf`, `sf`, `tf`, `if_`, `df`, `of`).
`Flags.to_word()` and `Flags.load_word()` convert to and from the 16-bit
status word. `i8086emu.operands.interrupt(cpu, vector)` enters an interrupt
handler from outside the instruction stream.

## Modules

- `i8086emu.state` – register and segment indices (`Reg8`, `Reg16`,
  `Segment`), jump conditions (`Condition`), `Flags`, `ModRM` decoding, the
  `Bus` protocol with its `Memory` implementation, and `CpuState` with
  segment:offset address translation and instruction fetch.
- `i8086emu.alu` – 8- and 16-bit arithmetic, logic, rotate and shift
  operations that return the result and update a `Flags` object.
- `i8086emu.operands` – Mod R/M addressing, register and memory operands,
  stack pushes and pops, and interrupt entry.
- `i8086emu.transfer` – data movement, string, I/O and flag instructions.
- `i8086emu.arith` – arithmetic, decimal adjust, shift and multiply/divide
  groups.
- `i8086emu.control` – jumps, calls, returns, loops, interrupts, `HLT`,
  `WAIT` and `ESC`.
- `i8086emu.cpu` – the `I8086` processor that fetches, decodes and executes.

## What it does not do

This is a library only: there is no command-line program for loading and
running binaries. It does not count clock cycles, does not disassemble or
print mnemonics, and does not emulate a coprocessor (`ESC` only decodes and
skips its operand) or any peripheral hardware beyond the bus you attach.

## Running the tests

```
pip install .[test]
pytest
```