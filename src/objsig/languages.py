"""Language and attribute namespaces used by the token classifier."""

from enum import IntEnum


class Language(IntEnum):
    """Language a classified token belongs to."""
    OBJECTSCRIPT = 1
    SQL = 2
    CLASS = 3
    HTML = 5
    XML = 9


class Attribute(IntEnum):
    """ObjectScript token attributes."""
    ERROR = 0
    COMMENT = 1
    DOC_COMMENT = 2
    STRING = 3
    NUMBER = 4
    DELIMITER = 5
    OPERATOR = 6
    COMMAND = 7
    LABEL = 8
    LOCAL_VARIABLE = 9
    GLOBAL = 10
    ROUTINE_REF = 11
    SYSTEM_FUNCTION = 12
    EXTRINSIC = 13
    MACRO = 14
    PREPROCESSOR = 15
    CLASS_NAME = 16
    METHOD = 17
    PROPERTY = 18
    MEMBER = 19
    ROUTINE_NAME = 20
    KEYWORD = 21


NON_CODE_ATTRIBUTES = frozenset({Attribute.COMMENT, Attribute.DOC_COMMENT, Attribute.STRING})

ROUTINE_LANGUAGE_IDS = frozenset({"objectscript", "objectscript-int"})

LANGUAGE_IDS_BY_SUFFIX = {
    ".cls": "objectscript-class",
    ".mac": "objectscript",
    ".int": "objectscript-int",
    ".inc": "objectscript-macros",
}
