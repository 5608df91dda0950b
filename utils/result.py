"""Tagged success/failure values returned by the service layer."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL = 500

    @property
    def status_code(self) -> int:
        return self.value


@dataclass(frozen=True)
class Ok:
    value: Any

    ok = True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    ok = False


def not_found(message: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, message)


def internal_error(message: str) -> Err:
    return Err(ErrorKind.INTERNAL, message)


def bad_request(message: str) -> Err:
    return Err(ErrorKind.BAD_REQUEST, message)
