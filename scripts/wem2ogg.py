#!/usr/bin/env python3
'''
Convert a Wwise WEM file into an Ogg Vorbis one.

 $ wem2ogg.py --info music.wem
 $ wem2ogg.py music.wem music.ogg
'''
import os
import sys
import logging

from wwogg.converter import Converter
from wwogg.audio.wem.enum import ForcePacketFormat
from wwogg.audio.vorbis.codebook import DEFAULT_CODEBOOKS_NAME
from wwogg.exceptions import WwoggException


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)


def usage(progname):
    print(f'''usage: {progname} [options] <input.wem> [output.ogg]

 --info              print the parameters of the file and exit
 --inline-codebooks  the codebooks are in the setup packet
 --full-setup        the setup packet is complete, only copy it
 --mod-packets       force the modified packets
 --no-mod-packets    force the standard packets

The codebook library is read from the path in the CODEBOOKS_FILE
environment variable (default '{DEFAULT_CODEBOOKS_NAME}').''')
    sys.exit(1)


def parse_args(argv):
    options = {
        'inline_codebooks': False,
        'full_setup': False,
        'force_packet_format': ForcePacketFormat.NONE,
    }
    info = False
    paths = []

    for arg in argv:
        if arg == '--info':
            info = True
        elif arg == '--inline-codebooks':
            options['inline_codebooks'] = True
        elif arg == '--full-setup':
            options['full_setup'] = True
        elif arg == '--mod-packets':
            options['force_packet_format'] = ForcePacketFormat.MODIFIED
        elif arg == '--no-mod-packets':
            options['force_packet_format'] = ForcePacketFormat.UNMODIFIED
        elif arg.startswith('--'):
            return None
        else:
            paths.append(arg)

    return info, options, paths


if __name__ == '__main__':
    args = parse_args(sys.argv[1:])

    if args is None or not 1 <= len(args[2]) <= 2:
        usage(sys.argv[0])

    info, options, paths = args

    input_path = paths[0]
    output_path = paths[1] if len(paths) > 1 else os.path.splitext(input_path)[0] + '.ogg'
    codebooks = os.environ.get('CODEBOOKS_FILE', DEFAULT_CODEBOOKS_NAME)

    try:
        converter = Converter(input_path, codebooks=codebooks, **options)

        if info:
            print(converter.describe())
            sys.exit(0)

        data = converter.convert()
    except (WwoggException, OSError) as e:
        logger.error('failed to convert \'%s\': %s' % (input_path, e))
        sys.exit(1)

    with open(output_path, 'wb') as out:
        out.write(data)

    logger.info('written %s (%d bytes)' % (output_path, len(data)))
