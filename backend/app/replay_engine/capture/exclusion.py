"""
Exclusion Policy

Decides whether an event source should be ignored during capture.
The engine's own identity is excluded unless explicitly turned off;
system UI packages are matched by prefix or substring.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Set

from ..config import DEFAULT_SYSTEM_PREFIXES, EngineConfig

logger = logging.getLogger(__name__)


@dataclass
class ExclusionConfig:
    """Configuration for source exclusion"""
    include_self_always: bool = True  # skip events that carry no source identity
    exclude_self: bool = True
    own_identity: str = ""
    explicit_exclude_set: Set[str] = field(default_factory=set)
    system_prefix_list: List[str] = field(default_factory=lambda: list(DEFAULT_SYSTEM_PREFIXES))

    @classmethod
    def from_engine_config(cls, config: EngineConfig) -> "ExclusionConfig":
        return cls(
            include_self_always=config.skip_unidentified,
            exclude_self=config.exclude_own_app,
            own_identity=config.own_identity,
            explicit_exclude_set=set(config.excluded_packages),
            system_prefix_list=list(config.system_prefixes),
        )


class ExclusionPolicy:
    """
    Source filter for captured events.

    Reads happen on every ingested event, writes only through the admin
    mutators, so readers work on an immutable snapshot of the explicit set
    that writers replace under a lock.
    """

    def __init__(self, config: Optional[ExclusionConfig] = None):
        self.config = config or ExclusionConfig()
        self._lock = threading.Lock()
        self._exclude_self = self.config.exclude_self
        self._prefixes = tuple(p for p in self.config.system_prefix_list if p)

        explicit = set(self.config.explicit_exclude_set)
        if self._exclude_self and self.config.own_identity:
            explicit.add(self.config.own_identity)
        self._explicit: FrozenSet[str] = frozenset(explicit)

    @property
    def exclude_self(self) -> bool:
        return self._exclude_self

    def should_exclude(self, identity: Optional[str]) -> bool:
        """Return True if events from this source must be ignored"""
        if not identity:
            return self.config.include_self_always

        if identity in self._explicit:
            return True

        for prefix in self._prefixes:
            if identity.startswith(prefix) or prefix in identity:
                return True

        return False

    # ==================== Admin Operations ====================

    def add(self, identity: str):
        """Exclude a source from the next evaluated event on"""
        if not identity:
            return
        with self._lock:
            self._explicit = self._explicit | {identity}
        logger.info(f"Added excluded source: {identity}")

    def remove(self, identity: str):
        """Stop excluding a source"""
        with self._lock:
            self._explicit = self._explicit - {identity}
        logger.info(f"Removed excluded source: {identity}")

    def set_exclude_self(self, exclude: bool):
        """Toggle exclusion of the engine's own identity"""
        own = self.config.own_identity
        with self._lock:
            self._exclude_self = exclude
            if own:
                if exclude:
                    self._explicit = self._explicit | {own}
                else:
                    self._explicit = self._explicit - {own}
        logger.info(f"Exclude own app set to: {exclude}")

    def excluded(self) -> List[str]:
        """Sorted snapshot of the explicit exclusion set"""
        return sorted(self._explicit)
