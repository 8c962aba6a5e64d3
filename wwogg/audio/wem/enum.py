'''
This module contains the constant values used throught the WEM container.

Note: use Enum for value that cannot ORed together, Flag for the others.
'''
from enum import Enum


class ChunkKind(Enum):
    FMT  = b'fmt '
    CUE  = b'cue '
    LIST = b'LIST'
    SMPL = b'smpl'
    VORB = b'vorb'
    DATA = b'data'


class PacketHeaderStyle(Enum):
    '''How each packet in the data chunk is introduced.'''
    LEGACY     = 8  # 32 bit size, 32 bit granule
    MODERN     = 6  # 16 bit size, 32 bit granule
    NO_GRANULE = 2  # 16 bit size

    @property
    def header_size(self):
        return self.value


class LayoutVariant(Enum):
    '''The layout of the "vorb" block, identified by its size.

    EMBEDDED is the case without a "vorb" chunk, where the same block
    (of size 0x2a) lives at offset 0x18 of an extended 0x42 "fmt" chunk.'''
    EMBEDDED = None
    VORB_28  = 0x28
    VORB_2A  = 0x2a
    VORB_2C  = 0x2c
    VORB_32  = 0x32
    VORB_34  = 0x34

    @property
    def header_style(self):
        if self in (LayoutVariant.VORB_28, LayoutVariant.VORB_2C):
            return PacketHeaderStyle.LEGACY
        if self in (LayoutVariant.EMBEDDED, LayoutVariant.VORB_2A):
            return PacketHeaderStyle.NO_GRANULE

        return PacketHeaderStyle.MODERN

    @property
    def no_granule(self):
        return self.header_style == PacketHeaderStyle.NO_GRANULE

    @property
    def header_triad_present(self):
        '''The stream still contains the three Vorbis header packets.'''
        return self.header_style == PacketHeaderStyle.LEGACY

    @property
    def has_mod_signal(self):
        return self.no_granule


class ForcePacketFormat(Enum):
    '''Override of the detection of the modified Vorbis packets.'''
    NONE       = 0
    MODIFIED   = 1
    UNMODIFIED = 2


# values of the vorb "mod signal" seen with standard packets,
# anything else (0xd9, 0xcb, 0xbc, 0xb2, ...) means modified packets
UNMODIFIED_SIGNALS = (0x4a, 0x4b, 0x69, 0x70)

CODEC_ID_VENDOR = 0xffff
