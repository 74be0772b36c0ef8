"""
Organization acronym generation.
"""

from __future__ import annotations


# Articles, prepositions and conjunctions skipped when building acronyms
STOP_WORDS = frozenset({
    "de", "da", "do", "das", "dos", "e", "a", "o", "as", "os",
    "of", "the", "and", "for",
})

MIN_TOKEN_LENGTH = 3


def make_acronym(name: str | None) -> str:
    """Build an acronym from the initials of an organization name.

    Stop-words and tokens shorter than three characters are skipped.
    A name made only of skipped tokens yields an empty string.

    Examples:
        >>> make_acronym("Secretaria de Estado da Fazenda")
        'SEF'
        >>> make_acronym("de da do")
        ''
    """
    if not name:
        return ""

    initials = [
        token[0].upper()
        for token in name.split()
        if len(token) >= MIN_TOKEN_LENGTH and token.lower() not in STOP_WORDS
    ]
    return "".join(initials)
