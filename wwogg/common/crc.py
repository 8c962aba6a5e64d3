'''
We are implementing fields to handle CRC calculation.
'''

from .. import fields


def _crc_table(poly):
    table = []
    for idx in range(256):
        r = idx << 24
        for _ in range(8):
            if r & 0x80000000:
                r = (r << 1) ^ poly
            else:
                r <<= 1
            r &= 0xffffffff
        table.append(r)

    return table


OGG_CRC_TABLE = _crc_table(0x04c11db7)


def ogg_crc32(data, crc=0):
    for byte in data:
        crc = ((crc << 8) & 0xffffffff) ^ OGG_CRC_TABLE[((crc >> 24) & 0xff) ^ byte]

    return crc


class OggCRCField(fields.StructField):
    """CRC used by the Ogg framing: the polynomial is

      x^32+x^26+x^23+x^22+x^16+x^12+x^11+x^10+x^8+x^7+x^5+x^4+x^2+x+1

    (0x04c11db7) but, differently from the one in PNG/zlib, the register is
    initialized to zero, the bits are processed from the most significant
    one and the result is not inverted.

    The checksum covers the whole page (header and payload) with the field
    itself set to zero.

    See <https://xiph.org/ogg/doc/framing.html>.
    """

    def __init__(self, *args, **kwargs):
        super().__init__('I', *args, **kwargs)

    def calculate(self):
        stored = self.value
        self.value = 0
        try:
            return ogg_crc32(self.father.raw)
        finally:
            self.value = stored

    def update(self):
        self.value = self.calculate()

    def is_valid(self):
        return self.value == self.calculate()
