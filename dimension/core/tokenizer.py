"""Delimiter-separated token reader for one line of agent output."""

from __future__ import annotations

from dimension.core.errors import DimensionError


class LineTokenizer:
    """Typed, left-to-right access to the tokens of a single line.

    Each ``next_*`` call consumes tokens.  Reading past the last token or
    asking for a type the token does not parse as raises a TOKEN error.
    The ``*_array`` accessors consume every remaining token.
    """

    def __init__(self, line: str, delimiter: str = ",") -> None:
        self.line = line
        self.delimiter = delimiter
        self.tokens: list[str] = line.split(delimiter) if line else []
        self._cursor = 0

    def __len__(self) -> int:
        return len(self.tokens)

    @property
    def remaining(self) -> int:
        return len(self.tokens) - self._cursor

    def has_next(self) -> bool:
        return self._cursor < len(self.tokens)

    def reset(self) -> None:
        self._cursor = 0

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------

    def next_str(self) -> str:
        if not self.has_next():
            raise DimensionError.token(
                f"No tokens left in line {self.line!r} "
                f"(consumed {self._cursor} of {len(self.tokens)})"
            )
        token = self.tokens[self._cursor]
        self._cursor += 1
        return token

    def next_int(self) -> int:
        return self._convert(int, "int")

    def next_float(self) -> float:
        return self._convert(float, "float")

    # ------------------------------------------------------------------
    # Arrays (consume the rest of the line)
    # ------------------------------------------------------------------

    def next_str_array(self) -> list[str]:
        out = self.tokens[self._cursor:]
        self._cursor = len(self.tokens)
        return out

    def next_int_array(self) -> list[int]:
        return [self.next_int() for _ in range(self.remaining)]

    def next_float_array(self) -> list[float]:
        return [self.next_float() for _ in range(self.remaining)]

    # ------------------------------------------------------------------

    def _convert(self, cast, type_name: str):
        position = self._cursor
        token = self.next_str()
        try:
            return cast(token.strip())
        except ValueError:
            # leave the cursor on the bad token
            self._cursor = position
            raise DimensionError.token(
                f"Token {token!r} at position {position} of line {self.line!r} "
                f"is not a valid {type_name}"
            ) from None
