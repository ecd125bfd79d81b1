"""
Component name derivation.
"""

import re


# An uppercase run not followed by a lowercase letter is one acronym word
_WORD_PATTERN = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+")


def build_component_name(cls: type) -> str:
    """
    Derive the default component name of a class.

    Words are capitalized, acronym runs collapsed, and the first letter
    lowered:

        TestCapitalizedClassName          -> testCapitalizedClassName
        TESTConsecutiveUPPERCASEClassNAME -> testConsecutiveUppercaseClassName
        HTTPClient                        -> httpClient
    """
    words = _WORD_PATTERN.findall(cls.__name__)
    if not words:
        return cls.__name__

    name = "".join(word[0].upper() + word[1:].lower() for word in words)
    return name[0].lower() + name[1:]
