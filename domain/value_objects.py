import re
import secrets
import string
import time
from dataclasses import dataclass

_REF_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_PATTERN = re.compile(r"^ALM-\d{8}-[A-Z0-9]{4}$")


@dataclass(frozen=True)
class ReferenceNumber:
    value: str

    @classmethod
    def generate(cls, now_ms: int | None = None) -> "ReferenceNumber":
        ms = int(time.time() * 1000) if now_ms is None else now_ms
        stamp = str(ms)[-8:].rjust(8, "0")
        suffix = "".join(secrets.choice(_REF_ALPHABET) for _ in range(4))
        return cls(f"ALM-{stamp}-{suffix}")

    @staticmethod
    def is_valid(value: str) -> bool:
        return bool(REFERENCE_PATTERN.match(value or ""))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Permission:
    granted: bool
    reason: str | None = None  # set when denied

    @classmethod
    def allow(cls) -> "Permission":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Permission":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.granted
