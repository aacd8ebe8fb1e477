import pytest

from i8086emu import alu
from i8086emu.state import Flags

BYTES = [0x00, 0x01, 0x0F, 0x10, 0x7F, 0x80, 0x9A, 0xFE, 0xFF]
WORDS = [0x0000, 0x0001, 0x00FF, 0x7FFF, 0x8000, 0x1234, 0xFFFE, 0xFFFF]


def test_parity_of_zero():
    assert alu.parity8(0) == 0
    assert alu.parity16(0) == 0


@pytest.mark.parametrize("value", range(256))
def test_parity8_flips_with_one_bit(value):
    for bit in range(8):
        assert alu.parity8(value ^ (1 << bit)) == 1 - alu.parity8(value)


@pytest.mark.parametrize("value", WORDS)
def test_parity16_combines_bytes(value):
    assert alu.parity16(value) == alu.parity8(value & 0xFF) ^ alu.parity8(value >> 8)


@pytest.mark.parametrize("a", BYTES)
@pytest.mark.parametrize("b", BYTES)
def test_add8_result_and_carry(a, b):
    flags = Flags()
    result = alu.add8(flags, a, b)
    assert result == (a + b) & 0xFF
    assert flags.cf == int(a + b > 0xFF)
    assert flags.zf == int(result == 0)
    assert flags.of == flags.sf


def test_add8_wraps_to_zero():
    flags = Flags()
    assert alu.add8(flags, 0xFF, 1) == 0
    assert flags.cf == 1
    assert flags.zf == 1


@pytest.mark.parametrize("a", BYTES)
@pytest.mark.parametrize("b", BYTES)
def test_sub8_inverts_add8(a, b):
    flags = Flags()
    diff = alu.sub8(flags, a, b)
    assert flags.cf == int(a < b)
    assert alu.add8(flags, diff, b) == a


@pytest.mark.parametrize("a", BYTES)
@pytest.mark.parametrize("b", BYTES)
def test_adc8_and_sbb8_use_carry(a, b):
    plain, carried = Flags(), Flags(cf=1)
    assert alu.adc8(carried, a, b) == (alu.add8(plain, a, b) + 1) & 0xFF
    plain, carried = Flags(), Flags(cf=1)
    assert alu.sbb8(carried, a, b) == (alu.sub8(plain, a, b) - 1) & 0xFF


@pytest.mark.parametrize("a", BYTES)
def test_inc8_dec8_keep_carry(a):
    for cf in (0, 1):
        flags = Flags(cf=cf)
        assert alu.dec8(flags, alu.inc8(flags, a)) == a
        assert flags.cf == cf


@pytest.mark.parametrize("a", BYTES)
@pytest.mark.parametrize("b", BYTES)
def test_cmp8_sets_same_flags_as_sub8(a, b):
    compared, subtracted = Flags(), Flags()
    assert alu.cmp8(compared, a, b) is None
    alu.sub8(subtracted, a, b)
    assert compared == subtracted


@pytest.mark.parametrize("a", BYTES)
@pytest.mark.parametrize("b", BYTES)
def test_test8_sets_same_flags_as_and8(a, b):
    tested, anded = Flags(), Flags()
    alu.test8(tested, a, b)
    assert alu.and8(anded, a, b) == a & b
    assert tested == anded


@pytest.mark.parametrize("op", [alu.and8, alu.or8, alu.xor8, alu.and16, alu.or16, alu.xor16])
def test_logic_clears_carry_and_overflow(op):
    flags = Flags(cf=1, of=1, af=1)
    op(flags, 0xFF, 0x0F)
    assert flags.cf == 0
    assert flags.of == 0
    assert flags.af == 1


def test_xor_with_self_is_zero():
    flags = Flags()
    assert alu.xor8(flags, 0x5A, 0x5A) == 0
    assert flags.zf == 1
    assert alu.xor16(flags, 0x1234, 0x1234) == 0
    assert flags.zf == 1


@pytest.mark.parametrize("value", BYTES)
def test_rol8_full_turn_is_identity(value):
    assert alu.rol8(Flags(), value, 8) == value


@pytest.mark.parametrize("value", BYTES)
@pytest.mark.parametrize("count", [1, 3, 7])
def test_ror8_undoes_rol8(value, count):
    flags = Flags()
    assert alu.ror8(flags, alu.rol8(flags, value, count), count) == value


@pytest.mark.parametrize("value", BYTES)
@pytest.mark.parametrize("cf", [0, 1])
def test_rcl8_nine_steps_is_identity(value, cf):
    flags = Flags(cf=cf)
    assert alu.rcl8(flags, value, 9) == value
    assert flags.cf == cf


@pytest.mark.parametrize("value", BYTES)
@pytest.mark.parametrize("cf", [0, 1])
def test_rcr8_undoes_rcl8(value, cf):
    flags = Flags(cf=cf)
    rotated = alu.rcl8(flags, value, 3)
    assert alu.rcr8(flags, rotated, 3) == value
    assert flags.cf == cf


@pytest.mark.parametrize("op", [alu.shl8, alu.shr8, alu.sar8, alu.shl16, alu.shr16, alu.sar16])
def test_shift_by_zero_changes_nothing(op):
    flags = Flags(cf=1, of=1, zf=1)
    before = flags.to_word()
    assert op(flags, 0x81, 0) == 0x81
    assert flags.to_word() == before


@pytest.mark.parametrize("value", BYTES)
def test_shr8_single_step(value):
    flags = Flags()
    assert alu.shr8(flags, value, 1) == value >> 1
    assert flags.cf == value & 1


@pytest.mark.parametrize("value", BYTES)
def test_shl8_single_step(value):
    flags = Flags()
    assert alu.shl8(flags, value, 1) == (value << 1) & 0xFF
    assert flags.cf == value >> 7


def test_shl_overflow_rule_differs_by_width():
    narrow, wide = Flags(), Flags()
    alu.shl8(narrow, 0, 1)
    alu.shl16(wide, 0, 1)
    assert narrow.of == 0
    assert wide.of == 1


@pytest.mark.parametrize("op", [alu.sar8, alu.sar16])
def test_sar_clears_overflow_and_sets_carry(op):
    flags = Flags(of=1)
    op(flags, 0x03, 1)
    assert flags.of == 0
    assert flags.cf == 1


@pytest.mark.parametrize("a", WORDS)
@pytest.mark.parametrize("b", WORDS)
def test_add16_sub16_round_trip(a, b):
    flags = Flags()
    total = alu.add16(flags, a, b)
    assert flags.cf == int(a + b > 0xFFFF)
    assert flags.of == flags.sf
    assert alu.sub16(flags, total, b) == a


@pytest.mark.parametrize("a", WORDS)
@pytest.mark.parametrize("b", WORDS)
def test_adc16_and_sbb16_use_carry(a, b):
    plain, carried = Flags(), Flags(cf=1)
    assert alu.adc16(carried, a, b) == (alu.add16(plain, a, b) + 1) & 0xFFFF
    plain, carried = Flags(), Flags(cf=1)
    assert alu.sbb16(carried, a, b) == (alu.sub16(plain, a, b) - 1) & 0xFFFF


@pytest.mark.parametrize("a", WORDS)
@pytest.mark.parametrize("b", WORDS)
def test_cmp16_and_test16_flags(a, b):
    compared, subtracted = Flags(), Flags()
    alu.cmp16(compared, a, b)
    alu.sub16(subtracted, a, b)
    assert compared == subtracted
    tested, anded = Flags(), Flags()
    alu.test16(tested, a, b)
    alu.and16(anded, a, b)
    assert tested == anded


@pytest.mark.parametrize("a", WORDS)
def test_inc16_dec16_round_trip(a):
    flags = Flags(cf=1)
    assert alu.inc16(flags, alu.dec16(flags, a)) == a
    assert flags.cf == 1


@pytest.mark.parametrize("value", WORDS)
@pytest.mark.parametrize("count", [1, 5, 15])
def test_rotate16_round_trips(value, count):
    flags = Flags()
    assert alu.ror16(flags, alu.rol16(flags, value, count), count) == value
    assert alu.rol16(flags, value, 16) == value
    carried = Flags(cf=1)
    assert alu.rcr16(carried, alu.rcl16(carried, value, count), count) == value
    assert carried.cf == 1


@pytest.mark.parametrize("value", WORDS)
def test_shr16_single_step(value):
    flags = Flags()
    assert alu.shr16(flags, value, 1) == value >> 1
    assert flags.cf == value & 1
    assert flags.of == value >> 15