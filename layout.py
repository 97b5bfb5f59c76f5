#!/usr/bin/env python3

# The control store is 8192 words (32KiB). The decoder forms a micro-program address from the
# instruction class, opcode and addressing mode, so every region below sits at a fixed address:
#
#   word   byte
#   0000   00000  reg-reg         32 opcodes x 4
#   0080   00200  reg-imm         32 opcodes x 4
#   0100   00400  readcr          dispatcher + handler table
#   0180   00600  writecr         dispatcher + handler table
#   0200   00800  interrupts      16 x 32
#   0400   01000  mem-imm         8 addressing modes x 32 opcodes x 8
#   0c00   03000  reg-mem         8 addressing modes x 32 opcodes x 8
#   1400   05000  mem-reg         8 addressing modes x 32 opcodes x 8
#   1c00   07000  jumps           12 x 32
#   1d80   07600  misc            20 x 32

from dataclasses import dataclass

from micro_op import LayoutError

WORD_SIZE = 4
IMAGE_WORDS = 8192
IMAGE_SIZE = IMAGE_WORDS * WORD_SIZE

ROUTINE_SLOT = 32   # interrupts, jumps and misc ops each get 32 words
MODES = 8           # scaled index x base x displacement


@dataclass(frozen=True)
class Region:
    name: str
    start: int
    slots: int
    slot_size: int
    modes: int = 1

    @property
    def size(self):
        return self.slots * self.slot_size * self.modes

    @property
    def end(self):
        return self.start + self.size

    def address(self, slot=0, mode=0):
        if not 0 <= slot < self.slots or not 0 <= mode < self.modes:
            raise LayoutError(f"{self.name} has no slot {slot} in mode {mode}")
        return self.start + (mode * self.slots + slot) * self.slot_size


REG_REG = Region("Reg-Reg", 0x0000, 32, 4)
REG_IMM = Region("Reg-Imm", 0x0080, 32, 4)
READ_CR = Region("ReadCR", 0x0100, 1, 128)
WRITE_CR = Region("WriteCR", 0x0180, 1, 128)
INTERRUPTS = Region("Interrupt", 0x0200, 16, ROUTINE_SLOT)
MEM_IMM = Region("Mem-Imm", 0x0400, 32, 8, MODES)
REG_MEM = Region("Reg-Mem", 0x0c00, 32, 8, MODES)
MEM_REG = Region("Mem-Reg", 0x1400, 32, 8, MODES)
JUMPS = Region("Jump", 0x1c00, 12, ROUTINE_SLOT)
MISC = Region("Misc", 0x1d80, 20, ROUTINE_SLOT)

REGIONS = (REG_REG, REG_IMM, READ_CR, WRITE_CR, INTERRUPTS, MEM_IMM, REG_MEM, MEM_REG, JUMPS, MISC)


def check_layout(regions, total=IMAGE_WORDS):
    """ Raises LayoutError unless the regions are disjoint and tile [0, total) exactly """
    position = 0
    for region in sorted(regions, key=lambda r: r.start):
        if region.start < position:
            raise LayoutError(f"{region.name} at {region.start:#06x} overlaps the previous region")
        if region.start > position:
            raise LayoutError(f"words {position:#06x}..{region.start:#06x} are not covered by any region")
        position = region.end
    if position != total:
        raise LayoutError(f"regions cover {position} words, the control store has {total}")


check_layout(REGIONS)
