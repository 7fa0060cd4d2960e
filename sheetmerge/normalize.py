"""
Header normalization
====================

Canonicalizes header text so that the key column can be matched across
sheets whose headers differ in spacing, case or accents. The normalized
form is only used for matching; output columns always keep the original
header text.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, Iterable

RE_WHITESPACE_RUN = re.compile(r"\s+")


class HeaderNormalizer:
    """
    Stateless normalizer.

    ``" Código   Cliente "`` -> ``"codigo cliente"``
    """

    def normalize(self, header: Any) -> str:
        if header is None:
            return ""
        text = str(header)
        if not text.strip():
            return ""
        text = text.strip()
        text = RE_WHITESPACE_RUN.sub(" ", text)
        text = text.lower()
        return self._strip_diacritics(text)

    __call__ = normalize

    def build_header_index(self, headers: Iterable[str]) -> Dict[str, str]:
        """
        Map normalized header -> original header for one sheet.

        When two headers normalize to the same text, the last one wins.
        """
        index: Dict[str, str] = {}
        for header in headers:
            index[self.normalize(header)] = header
        return index

    @staticmethod
    def _strip_diacritics(text: str) -> str:
        decomposed = unicodedata.normalize("NFD", text)
        kept = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
        return unicodedata.normalize("NFC", kept)


DEFAULT_NORMALIZER = HeaderNormalizer()


def normalize_header(header: Any) -> str:
    """Module-level shortcut for ``DEFAULT_NORMALIZER.normalize``."""
    return DEFAULT_NORMALIZER.normalize(header)
