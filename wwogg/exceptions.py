from enum import Enum, auto


class ErrorKind(Enum):
    '''Closed set of failure families: every conversion error belongs to one.'''
    STRUCTURAL     = auto()
    REFERENCE      = auto()
    BIT_ACCOUNTING = auto()
    LIBRARY_LOOKUP = auto()
    IO             = auto()


class WwoggException(Exception):
    '''Base class to extend in order to throw exception in wwogg.

    It takes a message, the chain of the layer that caused the exception
    (the names of the fields traversed while unpacking) and an arbitrary
    set of keyword arguments describing the context (offsets, ids,
    expected/actual values).
    '''
    kind = ErrorKind.STRUCTURAL

    def __init__(self, message='', chain=None, **context):
        self.message = message
        self.chain = chain if chain is not None else []
        self.context = context
        super().__init__(message)

    def __str__(self):
        msg = self.message or self.__class__.__name__
        if self.context:
            msg += ' (%s)' % ', '.join('%s=%s' % (_k, _format(_v)) for _k, _v in self.context.items())
        if self.chain:
            msg += ' at %s' % '.'.join(reversed(self.chain))

        return msg


def _format(value):
    return hex(value) if isinstance(value, int) and not isinstance(value, bool) and value > 9 else str(value)


class UnpackException(WwoggException):
    pass


class MagicException(WwoggException):
    pass


class ChunkUnpackException(WwoggException):
    pass


class StructuralException(WwoggException):
    '''Missing or wrong-sized chunk, bad codec id, bad packet type.'''
    pass


class TruncatedException(WwoggException):
    '''The data ends before the structure that should be there.'''
    pass


class ShortReadException(TruncatedException):
    '''The stream returned fewer bytes than requested.'''
    kind = ErrorKind.IO


class ReferenceException(WwoggException):
    '''An index into codebooks, floors, residues, mappings or modes is out of range.

    This is useful when is not possible to let an unknown value
    slip through the parsing: every bit after it would be misread.'''
    kind = ErrorKind.REFERENCE


class SizeMismatchException(WwoggException):
    kind = ErrorKind.BIT_ACCOUNTING


class InvalidCodebookIdException(WwoggException):
    kind = ErrorKind.LIBRARY_LOOKUP

    def __init__(self, codebook_id, hint='inline_codebooks', **context):
        self.codebook_id = codebook_id
        self.hint = hint
        super().__init__(
            'invalid codebook id 0x%x, try %s' % (codebook_id, hint),
            codebook_id=codebook_id, **context)


class ReadException(WwoggException):
    kind = ErrorKind.IO
