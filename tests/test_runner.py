import logging
import pickle

import pytest

from chip8_core import Chip8CPU, OutOfBounds, UnknownInstruction
from chip8_runner import Chip8Runner, EmulatorConfig


@pytest.fixture
def runner(tmp_path):
    return Chip8Runner(EmulatorConfig(save_dir=str(tmp_path)))


def test_cycles_per_frame():
    config = EmulatorConfig()
    assert config.cycles_per_frame == 500 // 60
    config.speed_multiplier = 2
    assert config.cycles_per_frame == 1000 // 60
    assert EmulatorConfig(cpu_frequency=10).cycles_per_frame == 1


def test_nothing_runs_without_rom(runner):
    assert not runner.running
    assert runner.run_frame() == 0


def test_frame_ticks_timers_once(runner, assemble):
    runner.load_rom(assemble(0x1200), "loop.ch8")
    runner.cpu.delay_timer = 10

    executed = runner.run_frame()

    assert executed == runner.config.cycles_per_frame
    assert runner.cpu.delay_timer == 9


def test_paused_runner_does_nothing(runner, assemble):
    runner.load_rom(assemble(0x6001))
    runner.toggle_pause()
    assert runner.run_frame() == 0
    assert runner.cpu.v[0] == 0
    runner.toggle_pause()
    assert runner.run_frame() > 0


def test_halts_on_error(runner, assemble):
    runner.load_rom(assemble(0x6001, 0x0000))

    runner.run_frame()

    assert runner.halted
    assert isinstance(runner.last_error, UnknownInstruction)
    assert runner.cpu.pc == 0x202
    assert runner.cpu.v[0] == 1
    assert runner.run_frame() == 0


def test_keep_going_skips_bad_instruction(assemble):
    runner = Chip8Runner(EmulatorConfig(halt_on_error=False))
    runner.load_rom(assemble(0x0000, 0x6107, 0x1204))

    executed = runner.run_frame()

    assert not runner.halted
    assert runner.cpu.v[1] == 7
    assert executed == runner.config.cycles_per_frame - 1


def test_wait_for_key_ends_frame_early(runner, assemble):
    runner.load_rom(assemble(0xF00A, 0x1202))

    assert runner.run_frame() == 1
    assert runner.cpu.waiting_for_key
    assert runner.run_frame() == 0

    runner.set_key(4, True)
    runner.run_frame()
    assert runner.cpu.v[0] == 4
    assert not runner.cpu.waiting_for_key
    assert runner.cpu.pc == 0x202


def test_step(runner, assemble):
    runner.load_rom(assemble(0x6003, 0xF015))
    assert runner.step()
    assert runner.step()
    assert runner.cpu.delay_timer == 2


def test_load_rom_file(runner, tmp_path, assemble):
    rom = tmp_path / "pong.ch8"
    rom.write_bytes(assemble(0x6A05, 0x1202))

    assert runner.load_rom_file(str(rom)) == 4
    assert runner.cpu.rom_name == "pong.ch8"
    assert runner.cpu.memory[0x200] == 0x6A


def test_reload_restarts_rom(runner, assemble):
    runner.load_rom(assemble(0x6A05, 0xA300, 0xFA33, 0x1206), "bcd.ch8")
    runner.run_frame()
    assert list(runner.cpu.memory[0x300:0x303]) == [0, 0, 5]

    runner.cpu.memory[0x200] = 0x00
    runner.reload()

    assert runner.cpu.pc == 0x200
    assert runner.cpu.v[0xA] == 0
    assert runner.cpu.memory[0x200] == 0x6A
    assert runner.cpu.rom_name == "bcd.ch8"


def test_reload_clears_halt(runner, assemble):
    runner.load_rom(assemble(0x00EE))
    runner.run_frame()
    assert runner.halted
    runner.reload()
    assert not runner.halted
    assert runner.last_error is None


def test_save_and_load_state(runner, tmp_path, assemble):
    runner.load_rom(assemble(0x6A05, 0x1202), "game.ch8")
    runner.run_frame()

    path = runner.save_state()
    assert path == str(tmp_path / "game.ch8.sav")

    runner.cpu.v[0xA] = 99
    runner.cpu.pc = 0x400
    assert runner.load_state()

    assert runner.cpu.v[0xA] == 5
    assert runner.cpu.pc == 0x202
    assert runner.cpu.draw_flag


def test_load_state_without_save_file(runner, assemble):
    runner.load_rom(assemble(0x1200), "fresh.ch8")
    assert runner.load_state() is False


def test_save_requires_rom(runner):
    assert runner.save_state() is None
    assert runner.load_state() is False


def test_load_state_rejects_foreign_pickle(runner, tmp_path, assemble):
    runner.load_rom(assemble(0x1200), "odd.ch8")
    with open(tmp_path / "odd.ch8.sav", "wb") as f:
        pickle.dump({"pc": 0x200}, f)

    with pytest.raises(TypeError):
        runner.load_state()


def test_speed_limits(runner):
    for _ in range(10):
        runner.increase_speed()
    assert runner.config.speed_multiplier == 16
    for _ in range(10):
        runner.decrease_speed()
    assert runner.config.speed_multiplier == 1


def test_runner_uses_given_cpu():
    cpu = Chip8CPU()
    assert Chip8Runner(cpu=cpu).cpu is cpu


def test_debug_dump(runner, assemble):
    runner.load_rom(assemble(0x6105, 0x2300))
    runner.step()
    runner.step()

    dump = runner.debug_dump()

    assert "PC: $0300" in dump
    assert "V1=$05" in dump
    assert "Stack: $204" in dump


def test_trace_logs_instructions(assemble, caplog):
    runner = Chip8Runner(EmulatorConfig(trace=True, cpu_frequency=60))
    runner.load_rom(assemble(0x1200))

    with caplog.at_level(logging.DEBUG, logger="chip8_runner"):
        runner.run_frame()

    assert "JP 0x200" in caplog.text


def test_halt_is_logged(runner, assemble, caplog):
    runner.load_rom(assemble(0xF0FF))
    with caplog.at_level(logging.ERROR, logger="chip8_runner"):
        runner.run_frame()
    assert "Unknown instruction F0FF" in caplog.text


def test_load_state_rejects_inconsistent_snapshot(runner, tmp_path, assemble):
    runner.load_rom(assemble(0x1200), "broken.ch8")
    state = runner.cpu.get_state()
    state.waiting_for_key = True
    state.key_register = 40
    with open(tmp_path / "broken.ch8.sav", "wb") as f:
        pickle.dump(state, f)

    with pytest.raises(OutOfBounds):
        runner.load_state()

    assert not runner.cpu.waiting_for_key
    assert runner.run_frame() == runner.config.cycles_per_frame


@pytest.mark.parametrize("payload", [b"", b"not a pickle"])
def test_load_state_rejects_corrupt_file(runner, tmp_path, assemble, payload):
    runner.load_rom(assemble(0x1200), "corrupt.ch8")
    (tmp_path / "corrupt.ch8.sav").write_bytes(payload)

    with pytest.raises(TypeError):
        runner.load_state()
