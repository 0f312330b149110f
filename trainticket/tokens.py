"""Splitting command lines into tokens and fields."""

from __future__ import annotations


class TokenScanner:
    """Reads space-separated tokens from one line of text."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _skip_spaces(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos] == " ":
            self._pos += 1

    def next_token(self) -> str:
        """Return the next token, or an empty string when none is left."""
        self._skip_spaces()
        end = self._text.find(" ", self._pos)
        if end < 0:
            end = len(self._text)
        token = self._text[self._pos:end]
        self._pos = end
        return token

    def has_more_tokens(self) -> bool:
        """Tell whether another token follows."""
        self._skip_spaces()
        return self._pos < len(self._text)


def separate(text: str, flag: str) -> list[str]:
    """Split `text` at every occurrence of the first character of `flag`."""
    return text.split(flag[0] if flag else "\0")