#!/usr/bin/env python3

from amaranth import *
from amaranth.lib.memory import Memory

from layout import IMAGE_WORDS


class ControlStoreROM(Elaboratable):
    """
        The control store as the sequencer sees it: an 8K x 32bit ROM with an asynchronous read port.

        i_addr selects a micro-op word, o_word is the raw word and o_tag its two variant bits
        (ALU register op, ALU immediate op, load constant, relative jump).

        Build it with from_image, which rejects a wrong sized image before amaranth sees the ROM.
    """
    def __init__(self, words):
        self.i_addr = Signal(range(IMAGE_WORDS))
        self.o_word = Signal(32)
        self.o_tag = Signal(2)

        self.memory = Memory(shape=32, depth=IMAGE_WORDS, init=list(words))
        self.read_port = self.memory.read_port(domain="comb")

    @classmethod
    def from_image(cls, words):
        if len(words) != IMAGE_WORDS:
            raise ValueError(f"a control store holds {IMAGE_WORDS} words, got {len(words)}")
        return cls(words)

    def elaborate(self, platform):
        m = Module()

        m.submodules.memory = self.memory

        m.d.comb += [
            self.read_port.addr.eq(self.i_addr),
            self.o_word.eq(self.read_port.data),
            self.o_tag.eq(self.read_port.data[0:2]),
        ]
        return m

    def to_verilog(self):
        from amaranth.back import verilog

        return verilog.convert(self, name="control_store", ports=[self.i_addr, self.o_word, self.o_tag])


if __name__ == "__main__":
    from amaranth.sim import Simulator

    import control_store

    store = control_store.build()
    rom = ControlStoreROM.from_image(store.words)

    async def bench(ctx):
        for symbol in store.symbols[:16]:
            ctx.set(rom.i_addr, symbol.address)
            print(f"{symbol.address:04x} -> {ctx.get(rom.o_word):08x} tag {ctx.get(rom.o_tag)}  {symbol.name}")

    sim = Simulator(rom)
    sim.add_testbench(bench)

    sim.run()
