import random

import pytest

from chip8_core import Chip8CPU


def program(*words: int) -> bytes:
    """Assemble 16-bit opcodes into big-endian ROM bytes"""
    data = bytearray()
    for word in words:
        data += bytes([(word >> 8) & 0xFF, word & 0xFF])
    return bytes(data)


@pytest.fixture
def cpu() -> Chip8CPU:
    return Chip8CPU(rng=random.Random(1234))


@pytest.fixture
def run(cpu):
    """Load opcodes at 0x200 and execute one cycle per opcode"""

    def _run(*words: int, cycles: int = None) -> Chip8CPU:
        cpu.load(program(*words))
        for _ in range(len(words) if cycles is None else cycles):
            cpu.cycle()
        return cpu

    return _run


@pytest.fixture
def assemble():
    return program
