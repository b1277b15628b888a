"""Parameters that span the space used for reliability measurement."""

from __future__ import annotations

import enum


class RelPar(enum.IntEnum):
    """A detection parameter usable in the reliability parameter space."""

    PEAK = 0
    SUM = 1
    MEAN = 2
    CHAN = 3
    PIX = 4
    FILL = 5
    STD = 6
    SKEW = 7
    KURT = 8

    @classmethod
    def parse(cls, name: str | int | RelPar) -> RelPar:
        """Return the parameter given by its short name, member name or number.

        Raises ValueError if the name does not denote a known parameter.
        """
        if isinstance(name, RelPar):
            return name
        if isinstance(name, int) and not isinstance(name, bool):
            try:
                return cls(name)
            except ValueError:
                raise ValueError(
                    f"Unknown parameter requested for reliability measurement ({name})."
                ) from None
        if isinstance(name, str):
            key = name.strip().upper()
            if key in cls.__members__:
                return cls.__members__[key]
        raise ValueError(
            f"Unknown parameter requested for reliability measurement ({name!r})."
        )

    def short_name(self) -> str:
        """Return the short lower-case name of the parameter, e.g. 'peak'."""
        return self.name.lower()