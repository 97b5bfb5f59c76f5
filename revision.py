#!/usr/bin/env python3

from enum import Enum


class Revision(Enum):
    """
        The ETCa extension sets a control store can be built for.

        E0FF.F.9 only addresses 16 bits. 5E0FF.F.9 adds the wide addressing extensions,
        which unlock the 32 and 64 bit absolute jumps and the ADDRESS_MODE control register.
    """
    ETCA_E0FF_F_9 = "e0ff"
    ETCA_5E0FF_F_9 = "5e0ff"

    @property
    def wide_addressing(self):
        return self is Revision.ETCA_5E0FF_F_9

    @property
    def address_bits(self):
        return 64 if self.wide_addressing else 16


DEFAULT_REVISION = Revision.ETCA_5E0FF_F_9
