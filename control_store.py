#!/usr/bin/env python3

# Builds the ETCa control store image.
#
# Every region of the layout is filled by exactly one builder and every word is written exactly
# once; anything a builder leaves empty is the no-op. The result is 8192 little endian words.

import argparse
import struct
import sys
from dataclasses import dataclass
from pathlib import Path

import layout
from control_registers import read_cr, write_cr
from instruction_families import ALL_MODES, mem_imm, mem_reg, reg_imm, reg_mem, reg_reg
from interrupts import interrupts
from jumps import jumps
from micro_op import EncodingError, LayoutError, disassemble
from misc_ops import misc_ops
from revision import DEFAULT_REVISION, Revision


@dataclass(frozen=True)
class Symbol:
    address: int
    region: str
    name: str

    def __str__(self):
        return f"{self.region} '{self.name}' at offset {self.address}"


@dataclass(frozen=True)
class ControlStore:
    revision: Revision
    words: tuple
    symbols: tuple

    def to_bytes(self):
        return struct.pack(f"<{len(self.words)}I", *self.words)

    def write(self, path):
        Path(path).write_bytes(self.to_bytes())

    def find(self, name, region=None):
        """ Address of a labelled routine """
        for symbol in self.symbols:
            if symbol.name == name and region in (None, symbol.region):
                return symbol.address
        raise KeyError(name)


class _Image:
    def __init__(self):
        self.words = [None] * layout.IMAGE_WORDS
        self.symbols = []

    def place(self, region, program, slot=0, mode=0, operands=""):
        """ One slot of a table region """
        self._write(region, region.address(slot, mode), region.slot_size, program, operands)

    def place_region(self, region, program):
        self._write(region, region.start, region.size, program, "")

    def _write(self, region, base, expected, program, operands):
        if len(program) != expected:
            raise LayoutError(f"{region.name} '{program.label}' is {len(program)} words, its slot is {expected}")

        for addr, op in enumerate(program.ops, start=base):
            if self.words[addr] is not None:
                raise LayoutError(f"word {addr:#06x} of {region.name} is written twice")
            try:
                self.words[addr] = op.encode()
            except EncodingError as e:
                raise EncodingError(f"{region.name} '{program.label}' at word {addr:#06x}: {e}") from e

        for name, offset in program.labels:
            self.symbols.append(Symbol(base + offset, region.name, f"{name}{operands}"))

    def finish(self, revision):
        if None in self.words:
            raise LayoutError(f"word {self.words.index(None):#06x} was never written")
        return ControlStore(revision, tuple(self.words), tuple(self.symbols))


def build(revision=DEFAULT_REVISION):
    image = _Image()

    for code in range(layout.REG_REG.slots):
        image.place(layout.REG_REG, reg_reg(code), slot=code)
    for code in range(layout.REG_IMM.slots):
        image.place(layout.REG_IMM, reg_imm(code), slot=code)

    image.place(layout.READ_CR, read_cr(revision))
    image.place(layout.WRITE_CR, write_cr(revision))
    image.place_region(layout.INTERRUPTS, interrupts())

    for mode in ALL_MODES:
        for code in range(layout.MEM_IMM.slots):
            image.place(layout.MEM_IMM, mem_imm(code, mode), code, mode.index, f" {mode}, _")
    for mode in ALL_MODES:
        for code in range(layout.REG_MEM.slots):
            image.place(layout.REG_MEM, reg_mem(code, mode), code, mode.index, f" _, {mode}")
    for mode in ALL_MODES:
        for code in range(layout.MEM_REG.slots):
            image.place(layout.MEM_REG, mem_reg(code, mode), code, mode.index, f" {mode}, _")

    image.place_region(layout.JUMPS, jumps(revision))
    image.place_region(layout.MISC, misc_ops())

    return image.finish(revision)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build the ETCa microcode ROM")
    parser.add_argument("--revision", choices=[r.value for r in Revision], default=DEFAULT_REVISION.value,
                        help="extension set to build for (default: %(default)s)")
    parser.add_argument("-o", "--output", type=Path, help="write the ROM image here")
    parser.add_argument("--list", action="store_true", help="print where each routine starts")
    parser.add_argument("--disassemble", action="store_true", help="print every word that is not a no-op")
    parser.add_argument("--verilog", type=Path, help="write the ROM as a verilog module here")
    args = parser.parse_args(argv)

    store = build(Revision(args.revision))

    if args.list:
        for symbol in store.symbols:
            print(symbol)
    if args.disassemble:
        for line in disassemble(store.words):
            print(line)
    if args.output:
        store.write(args.output)
        print(f"{layout.IMAGE_SIZE} bytes written to {args.output}")
    if args.verilog:
        from control_store_rom import ControlStoreROM

        args.verilog.write_text(ControlStoreROM.from_image(store.words).to_verilog())
        print(f"verilog written to {args.verilog}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
