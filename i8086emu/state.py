"""Register file, flags, Mod R/M decoding and the memory bus of the processor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol

ADDRESS_MASK = 0xFFFFF
MEMORY_SIZE = 0x100000


class Reg8(IntEnum):
    """Encoding of the 8-bit registers."""

    AL = 0
    CL = 1
    DL = 2
    BL = 3
    AH = 4
    CH = 5
    DH = 6
    BH = 7


class Reg16(IntEnum):
    """Encoding of the 16-bit registers."""

    AX = 0
    CX = 1
    DX = 2
    BX = 3
    SP = 4
    BP = 5
    SI = 6
    DI = 7


class Segment(IntEnum):
    """Encoding of the segment registers."""

    ES = 0
    CS = 1
    SS = 2
    DS = 3


class Condition(IntEnum):
    """Condition codes of the conditional jumps (low nibble of the opcode)."""

    O = 0b0000
    NO = 0b0001
    C = 0b0010
    NC = 0b0011
    Z = 0b0100
    NZ = 0b0101
    BE = 0b0110
    A = 0b0111
    S = 0b1000
    NS = 0b1001
    PE = 0b1010
    PO = 0b1011
    L = 0b1100
    GE = 0b1101
    LE = 0b1110
    G = 0b1111


_FLAG_BITS = (
    ("cf", 0),
    ("pf", 2),
    ("af", 4),
    ("zf", 6),
    ("sf", 7),
    ("tf", 8),
    ("if_", 9),
    ("df", 10),
    ("of", 11),
)
_RESERVED_MASK = 0xF02A


@dataclass
class Flags:
    """The 16-bit program status word, one attribute per flag (0 or 1)."""

    cf: int = 0
    pf: int = 0
    af: int = 0
    zf: int = 0
    sf: int = 0
    tf: int = 0
    if_: int = 0
    df: int = 0
    of: int = 0
    reserved: int = 0

    def to_word(self) -> int:
        """Pack the flags into the status word."""
        word = self.reserved & _RESERVED_MASK
        for name, bit in _FLAG_BITS:
            word |= (getattr(self, name) & 1) << bit
        return word

    def load_word(self, word: int) -> None:
        """Unpack a status word into the flags."""
        word &= 0xFFFF
        for name, bit in _FLAG_BITS:
            setattr(self, name, (word >> bit) & 1)
        self.reserved = word & _RESERVED_MASK


@dataclass(frozen=True)
class ModRM:
    """A decoded Mod R/M byte."""

    mod: int = 0
    reg: int = 0
    rm: int = 0

    @classmethod
    def from_byte(cls, value: int) -> ModRM:
        """Split a Mod R/M byte into its mod, reg and r/m fields."""
        return cls(mod=(value >> 6) & 3, reg=(value >> 3) & 7, rm=value & 7)

    @property
    def byte(self) -> int:
        """The encoded Mod R/M byte."""
        return (self.mod << 6) | (self.reg << 3) | self.rm


class Bus(Protocol):
    """What the processor needs from memory and the I/O space."""

    def read_byte(self, addr: int) -> int: ...

    def write_byte(self, addr: int, value: int) -> None: ...

    def read_word(self, addr: int) -> int: ...

    def write_word(self, addr: int, value: int) -> None: ...

    def read_io_byte(self, port: int) -> int: ...

    def write_io_byte(self, port: int, value: int) -> None: ...

    def read_io_word(self, port: int) -> int: ...

    def write_io_word(self, port: int, value: int) -> None: ...


class Memory:
    """One megabyte of little-endian memory and a 64K byte-wide port space.

    Unwritten ports read as 0xFF.
    """

    def __init__(self) -> None:
        self.data = bytearray(MEMORY_SIZE)
        self.ports: dict[int, int] = {}

    def read_byte(self, addr: int) -> int:
        return self.data[addr & ADDRESS_MASK]

    def write_byte(self, addr: int, value: int) -> None:
        self.data[addr & ADDRESS_MASK] = value & 0xFF

    def read_word(self, addr: int) -> int:
        return self.read_byte(addr) | (self.read_byte(addr + 1) << 8)

    def write_word(self, addr: int, value: int) -> None:
        self.write_byte(addr, value)
        self.write_byte(addr + 1, value >> 8)

    def read_io_byte(self, port: int) -> int:
        return self.ports.get(port & 0xFFFF, 0xFF)

    def write_io_byte(self, port: int, value: int) -> None:
        self.ports[port & 0xFFFF] = value & 0xFF

    def read_io_word(self, port: int) -> int:
        return self.read_io_byte(port) | (self.read_io_byte(port + 1) << 8)

    def write_io_word(self, port: int, value: int) -> None:
        self.write_io_byte(port, value)
        self.write_io_byte(port + 1, value >> 8)

    def load(self, addr: int, data: bytes) -> None:
        """Copy a block of bytes into memory starting at a physical address."""
        end = addr + len(data)
        if addr < 0 or end > MEMORY_SIZE:
            raise ValueError(
                f"block of {len(data)} bytes at {addr:#x} does not fit in memory"
            )
        self.data[addr:end] = data


@dataclass
class CpuState:
    """Registers, flags and decode state of the processor, attached to a bus."""

    bus: Bus
    ip: int = 0
    registers: list[int] = field(default_factory=lambda: [0] * 8)
    segments: list[int] = field(default_factory=lambda: [0] * 4)
    flags: Flags = field(default_factory=Flags)
    opcode: int = 0
    modrm: ModRM = field(default_factory=ModRM)
    segment_prefix: Segment | None = None
    rep_prefix: int | None = None
    test_line: bool = False

    def reg8(self, index: int) -> int:
        """Read an 8-bit register by its 3-bit encoding."""
        word = self.registers[index & 3]
        return (word >> 8) & 0xFF if index & 4 else word & 0xFF

    def set_reg8(self, index: int, value: int) -> None:
        """Write an 8-bit register by its 3-bit encoding."""
        slot = index & 3
        value &= 0xFF
        if index & 4:
            self.registers[slot] = (self.registers[slot] & 0x00FF) | (value << 8)
        else:
            self.registers[slot] = (self.registers[slot] & 0xFF00) | value

    def reg16(self, index: int) -> int:
        """Read a 16-bit register by its 3-bit encoding."""
        return self.registers[index & 7]

    def set_reg16(self, index: int, value: int) -> None:
        """Write a 16-bit register by its 3-bit encoding."""
        self.registers[index & 7] = value & 0xFFFF

    def physical_address(self, segment: int, offset: int) -> int:
        """The 20-bit address segment:offset."""
        return ((self.segments[segment] << 4) + offset) & ADDRESS_MASK

    def effective_segment(self, default: Segment) -> Segment:
        """The override segment if a prefix is active, else the default."""
        return default if self.segment_prefix is None else self.segment_prefix

    def ip_address(self) -> int:
        """The address CS:IP."""
        return self.physical_address(Segment.CS, self.ip)

    def stack_address(self, offset: int) -> int:
        return self.physical_address(self.effective_segment(Segment.SS), offset)

    def data_address(self, offset: int) -> int:
        return self.physical_address(self.effective_segment(Segment.DS), offset)

    def extra_address(self, offset: int) -> int:
        return self.physical_address(self.effective_segment(Segment.ES), offset)

    def fetch_byte(self) -> int:
        """Read the byte at CS:IP and advance IP by one."""
        value = self.bus.read_byte(self.ip_address())
        self.ip = (self.ip + 1) & 0xFFFF
        return value

    def fetch_word(self) -> int:
        """Read the word at CS:IP and advance IP by two."""
        value = self.bus.read_word(self.ip_address())
        self.ip = (self.ip + 2) & 0xFFFF
        return value

    def reset(self) -> None:
        """Clear registers and flags; execution restarts at FFFF:0000."""
        self.registers = [0] * 8
        self.segments = [0] * 4
        self.ip = 0
        self.segments[Segment.CS] = 0xFFFF
        self.flags.load_word(0)
        self.opcode = 0
        self.modrm = ModRM()