from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Ok:
    value: Any

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: Exception

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return str(self.error)
