"""
Symbol visibility and naming policy applied to every extracted class.
"""

from collections.abc import Iterable

from ici.core.classfile import ClassInfo, MemberInfo
from ici.core.models import FqnSymbol

DEFAULT_PACKAGE_BLACKLIST = ("sun/", "sunw/", "com/sun/")
DEFAULT_SYNTHETIC_MARKERS = ("$$anon$", "$$anonfun$", "$worker$")


class SymbolFilter:
    """
    Decides which declarations of a class reach the stores.

    - Archive entries under a blacklisted package prefix are dropped entirely.
    - A class that is not public yields no symbols at all.
    - Only public methods and fields of a public class are kept.
    - Any symbol whose FQN contains a compiler-synthesized marker is dropped.
    """

    def __init__(
        self,
        package_blacklist: Iterable[str] = DEFAULT_PACKAGE_BLACKLIST,
        synthetic_markers: Iterable[str] = DEFAULT_SYNTHETIC_MARKERS,
    ):
        self._package_blacklist = tuple(package_blacklist)
        self._synthetic_markers = tuple(synthetic_markers)

    def is_blacklisted(self, entry: str | None) -> bool:
        """True if an archive entry lives under a reserved vendor package."""
        if entry is None:
            return False
        return entry.lstrip("/").startswith(self._package_blacklist)

    def is_synthetic(self, fqn: str) -> bool:
        return any(marker in fqn for marker in self._synthetic_markers)

    def visible_members(self, members: Iterable[MemberInfo]) -> list[MemberInfo]:
        return [m for m in members if m.is_public]

    def accepts_class(self, clazz: ClassInfo) -> bool:
        return clazz.is_public

    def apply(self, symbols: Iterable[FqnSymbol]) -> list[FqnSymbol]:
        """Drop symbols with synthetic names."""
        return [s for s in symbols if not self.is_synthetic(s.fqn)]
