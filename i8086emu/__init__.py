"""Intel 8086 CPU emulator: registers, flags, ALU, operands and instruction decoder."""

__version__ = "0.1.0"