import pytest

from chip8_core import OutOfBounds


def test_skip_if_key_pressed(cpu, run):
    cpu.press_key(5)
    cpu = run(0x6005, 0xE09E)
    assert cpu.pc == 0x206


def test_no_skip_if_key_released(cpu, run):
    cpu.press_key(5)
    cpu.release_key(5)
    cpu = run(0x6005, 0xE09E)
    assert cpu.pc == 0x204


def test_skip_if_key_not_pressed(cpu, run):
    cpu = run(0x600E, 0xE0A1)
    assert cpu.pc == 0x206

    cpu.reset()
    cpu.press_key(0xE)
    cpu = run(0x600E, 0xE0A1)
    assert cpu.pc == 0x204


def test_key_register_outside_keypad(cpu, run):
    with pytest.raises(OutOfBounds):
        run(0x6010, 0xE09E)
    assert cpu.pc == 0x202


def test_host_key_index_checked(cpu):
    with pytest.raises(OutOfBounds):
        cpu.press_key(16)
    with pytest.raises(OutOfBounds):
        cpu.set_key(-1, True)


def test_first_pressed_key(cpu):
    assert cpu.first_pressed_key() is None
    cpu.press_key(0xC)
    cpu.press_key(0x3)
    assert cpu.first_pressed_key() == 0x3


def test_wait_for_key_blocks_until_pressed(cpu, assemble):
    cpu.load(assemble(0xF30A, 0x6101))
    cpu.delay_timer = 10

    assert cpu.cycle() is True
    assert cpu.waiting_for_key
    assert cpu.key_register == 3
    assert cpu.pc == 0x202

    # Re-issued without fetching; timers keep their once-per-cycle pace
    for _ in range(3):
        assert cpu.cycle() is False
    assert cpu.pc == 0x202
    assert cpu.v[1] == 0
    assert cpu.delay_timer == 6

    cpu.press_key(9)
    cpu.press_key(7)
    assert cpu.cycle() is False
    assert not cpu.waiting_for_key
    assert cpu.v[3] == 7

    assert cpu.cycle() is True
    assert cpu.v[1] == 1
    assert cpu.pc == 0x204


def test_wait_for_key_already_held(cpu, run):
    cpu.press_key(0xA)
    cpu = run(0xF20A)
    assert cpu.v[2] == 0xA
    assert not cpu.waiting_for_key
    assert cpu.pc == 0x202
