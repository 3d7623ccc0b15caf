"""CHIP-8 instruction decoding."""

from chex import dataclass


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)


def decode(instruction: int) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    instruction = int(instruction) & 0xFFFF
    return DecodedInstruction(
        raw=instruction,
        opcode=(instruction & 0xF000) >> 12,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF
    )


_ALU_MNEMONICS = {
    0x0: "LD V{x:X}, V{y:X}",
    0x1: "OR V{x:X}, V{y:X}",
    0x2: "AND V{x:X}, V{y:X}",
    0x3: "XOR V{x:X}, V{y:X}",
    0x4: "ADD V{x:X}, V{y:X}",
    0x5: "SUB V{x:X}, V{y:X}",
    0x6: "SHR V{x:X}, V{y:X}",
    0x7: "SUBN V{x:X}, V{y:X}",
    0xE: "SHL V{x:X}, V{y:X}",
}

_MISC_MNEMONICS = {
    0x07: "LD V{x:X}, DT",
    0x0A: "LD V{x:X}, K",
    0x15: "LD DT, V{x:X}",
    0x18: "LD ST, V{x:X}",
    0x1E: "ADD I, V{x:X}",
    0x29: "LD F, V{x:X}",
    0x33: "LD B, V{x:X}",
    0x55: "LD [I], V{x:X}",
    0x65: "LD V{x:X}, [I]",
}

_MNEMONICS = {
    0x1: "JP 0x{nnn:03X}",
    0x2: "CALL 0x{nnn:03X}",
    0x3: "SE V{x:X}, 0x{nn:02X}",
    0x4: "SNE V{x:X}, 0x{nn:02X}",
    0x6: "LD V{x:X}, 0x{nn:02X}",
    0x7: "ADD V{x:X}, 0x{nn:02X}",
    0xA: "LD I, 0x{nnn:03X}",
    0xB: "JP V0, 0x{nnn:03X}",
    0xC: "RND V{x:X}, 0x{nn:02X}",
    0xD: "DRW V{x:X}, V{y:X}, {n}",
}


def disassemble(instruction: int) -> str:
    """Render an opcode as an assembler-style mnemonic.

    Opcodes outside the instruction table come back as ``DW 0xNNNN`` rather than
    raising, so traces can show the word that is about to fault.
    """
    decoded = decode(instruction)
    fields = dict(x=decoded.x, y=decoded.y, n=decoded.n, nn=decoded.nn, nnn=decoded.nnn)

    template = None
    if decoded.opcode == 0x0:
        template = {0x0E0: "CLS", 0x0EE: "RET"}.get(decoded.nnn, "SYS 0x{nnn:03X}")
    elif decoded.opcode == 0x5 and decoded.n == 0:
        template = "SE V{x:X}, V{y:X}"
    elif decoded.opcode == 0x9 and decoded.n == 0:
        template = "SNE V{x:X}, V{y:X}"
    elif decoded.opcode == 0x8:
        template = _ALU_MNEMONICS.get(decoded.n)
    elif decoded.opcode == 0xE:
        template = {0x9E: "SKP V{x:X}", 0xA1: "SKNP V{x:X}"}.get(decoded.nn)
    elif decoded.opcode == 0xF:
        template = _MISC_MNEMONICS.get(decoded.nn)
    else:
        template = _MNEMONICS.get(decoded.opcode)

    if template is None:
        return f"DW 0x{decoded.raw:04X}"
    return template.format(**fields)
