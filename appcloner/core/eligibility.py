"""Default eligibility policy — a pure predicate over a source identifier.

The registry accepts any ``Callable[[str], bool]``; this denylist policy is
what the settings wire in by default.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

EligibilityPredicate = Callable[[str], bool]

# Applications known to carry anti-cloning protections.
DEFAULT_DENYLIST: tuple[str, ...] = (
    "com.google.android.gms",  # Google Play Services
    "com.android.vending",  # Google Play Store
    "com.google.android.gsf",  # Google Services Framework
)


class DenylistPolicy:
    """Rejects denylisted identifiers.

    The host's own identifier is refused by the registry itself, whatever
    predicate it is given.

    Examples
    --------
    >>> policy = DenylistPolicy(["com.android.vending"])
    >>> policy("com.example.app")
    True
    >>> policy("com.android.vending")
    False
    """

    def __init__(self, denylist: Iterable[str] = DEFAULT_DENYLIST) -> None:
        self._denylist = frozenset(denylist)

    @property
    def denylist(self) -> frozenset[str]:
        return self._denylist

    def __call__(self, identifier: str) -> bool:
        return identifier not in self._denylist


def allow_all(identifier: str) -> bool:
    """Predicate that accepts every identifier."""
    return True
