"""Error taxonomy for matches.

One exception type, ``DimensionError``, tagged with a closed ``ErrorKind``.
Callers branch on ``err.kind`` instead of on subclasses:

  SPAWN            agent process could not start (promoted to FATAL by Match)
  TOKEN            malformed command line (reported per agent, never fatal)
  MATCH_ERROR      recoverable agent misbehaviour, match continues
  MATCH_WARN       like MATCH_ERROR, logged at warning level
  FATAL            unrecoverable, the match ends in ERROR
  MATCH_DESTROYED  operation on a FINISHED / ERROR / DESTROYED match
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    SPAWN = "spawn"
    TOKEN = "token"
    MATCH_ERROR = "match_error"
    MATCH_WARN = "match_warn"
    FATAL = "fatal"
    MATCH_DESTROYED = "match_destroyed"


class DimensionError(Exception):
    """Raised by every layer of the match core; see ``kind``."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"DimensionError({self.kind.name}, {self.message!r})"

    @property
    def is_fatal(self) -> bool:
        return self.kind in (ErrorKind.FATAL, ErrorKind.SPAWN)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def spawn(cls, message: str) -> DimensionError:
        return cls(ErrorKind.SPAWN, message)

    @classmethod
    def token(cls, message: str) -> DimensionError:
        return cls(ErrorKind.TOKEN, message)

    @classmethod
    def match_error(cls, message: str) -> DimensionError:
        return cls(ErrorKind.MATCH_ERROR, message)

    @classmethod
    def match_warn(cls, message: str) -> DimensionError:
        return cls(ErrorKind.MATCH_WARN, message)

    @classmethod
    def fatal(cls, message: str) -> DimensionError:
        return cls(ErrorKind.FATAL, message)

    @classmethod
    def destroyed(cls, message: str) -> DimensionError:
        return cls(ErrorKind.MATCH_DESTROYED, message)
