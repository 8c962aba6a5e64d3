'''The converted files must open in libvorbis, through libsndfile.'''
import pytest
import soundfile

from wwogg.converter import Converter

from conftest import build_wem


# audio packets with the packet type bit clear, using mode 0 and mode 1
AUDIO = [b'\x00\x00', b'\x02\x00', b'\x00\x00']


@pytest.mark.parametrize('variant,mod_signal', [
    (0x32, 0x4a),
    (0x2a, 0x4a),
    (0x2a, 0xd9),
    (None, 0x4a),
])
def test_decoder_accepts_headers(tmp_path, library, variant, mod_signal):
    data = Converter(build_wem(variant=variant, mod_signal=mod_signal, audio=AUDIO),
                     codebooks=library).convert()
    path = tmp_path / 'converted.ogg'
    path.write_bytes(data)

    info = soundfile.info(str(path))

    assert info.format == 'OGG'
    assert info.subtype == 'VORBIS'
    assert info.channels == 2
    assert info.samplerate == 44100


def test_decoder_accepts_mono(tmp_path, library):
    data = Converter(build_wem(channels=1, sample_rate=22050, audio=AUDIO), codebooks=library).convert()
    path = tmp_path / 'converted.ogg'
    path.write_bytes(data)

    info = soundfile.info(str(path))

    assert info.channels == 1
    assert info.samplerate == 22050
