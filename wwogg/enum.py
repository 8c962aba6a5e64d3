from enum import Flag


class Compliant(Flag):
    '''It indicates which degree of compliantness the data must reflect the format.

    A mismatch on a magic or on an enumerated value raises only when the
    corresponding flag is set on the field or, through INHERIT, on one of
    its fathers; otherwise it is logged and the parsing goes on.'''
    NONE  = 0
    ENUM  = 1 << 0
    MAGIC = 1 << 1
    INHERIT = 1 << 2
