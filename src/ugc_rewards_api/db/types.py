from enum import Enum
from typing import Type


def enum_values(enum_cls: Type[Enum]) -> list[str]:
    """Persist enum values (``"pending"``) rather than member names."""

    return [member.value for member in enum_cls]
