"""
# wwogg, Wwise audio to Ogg Vorbis.

Audiokinetic Wwise stores its Vorbis audio in a RIFF container (the "WEM"
files) after stripping down the bitstream: the header packets are rebuilt
from a handful of parameters, the codebooks are replaced with ids into a
shared library and the audio packets lose some of their framing bits.

The conversion is split in the same steps used for any other format here:

 1. unpack(): the container is read with the declarative chunks
    (see wwogg.core and wwogg.fields) into the codec parameters.

 2. the Vorbis headers are rebuilt bit by bit, reading the stripped
    setup packet and writing the canonical one.

 3. the audio packets are copied into Ogg pages, fixing the first
    byte when needed.

The output is a standard Ogg Vorbis stream, see wwogg.converter.
"""
__version__ = '0.1.0'
