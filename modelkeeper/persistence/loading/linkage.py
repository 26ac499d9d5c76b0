"""Linkage resolution.

Table -> System and Asset -> System membership is derived from an ordered
list of strategies.  The first strategy that names a system wins:

1. ``ManifestMembership``: the system lists the entity in its manifest
   ``table_ids`` / ``asset_ids``.
2. ``MetadataSystemId``: the entity's ``metadata.system_id`` is a system of
   the same domain.
3. ``NameMatch``: a system's name (lower-cased, punctuation stripped) is a
   substring of the entity's file name (workspace/domain prefix removed) or
   of its own name.
4. ``FirstSystemFallback``: the first system of the domain.  Lossy; logged at
   warning level and recorded as an issue.

Strategies 3 and 4 only consider *open* systems, i.e. systems whose manifest
entry does not declare a membership list.  A declared list, even an empty
one, is closed.  With no candidate system the entity stays unassigned.

Relationships get their domain from the source table, else the target table,
else none.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import ClassVar, Protocol

from loguru import logger

from modelkeeper.persistence.identity import IdentityMap
from modelkeeper.persistence.layout.naming import strip_prefix
from modelkeeper.persistence.loading.resources import DomainLoadResult
from modelkeeper.persistence.models.enums import IssueKind, ResourceKind
from modelkeeper.persistence.models.manifest import SystemSpec
from modelkeeper.persistence.models.reports import LoadReport
from modelkeeper.persistence.models.resources import display_name
from modelkeeper.persistence.models.workspace import Relationship, System

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _squash(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


@dataclass(frozen=True, slots=True)
class LinkCandidate:
    """What the strategies know about one table or asset."""

    entity_id: str
    name: str
    path: str | None
    system_hint: str | None


@dataclass(slots=True)
class SystemSlot:
    """A system of the domain together with its declared membership (``None`` = open)."""

    system: System
    declared: list[str] | None

    @property
    def is_open(self) -> bool:
        return self.declared is None


class LinkageStrategy(Protocol):
    name: ClassVar[str]
    lossy: ClassVar[bool]

    def match(self, candidate: LinkCandidate, slots: Sequence[SystemSlot], prefixes: Sequence[str]) -> System | None: ...


# -- Strategies ----------------------------------------------------------------


class ManifestMembership:
    name = "manifest"
    lossy = False

    def match(self, candidate: LinkCandidate, slots: Sequence[SystemSlot], prefixes: Sequence[str]) -> System | None:
        return next((s.system for s in slots if s.declared and candidate.entity_id in s.declared), None)


class MetadataSystemId:
    name = "metadata"
    lossy = False

    def match(self, candidate: LinkCandidate, slots: Sequence[SystemSlot], prefixes: Sequence[str]) -> System | None:
        if not candidate.system_hint:
            return None
        return next((s.system for s in slots if s.system.id == candidate.system_hint), None)


class NameMatch:
    name = "name"
    lossy = False

    def match(self, candidate: LinkCandidate, slots: Sequence[SystemSlot], prefixes: Sequence[str]) -> System | None:
        haystacks = [_squash(candidate.name)]
        if candidate.path:
            stem = PurePosixPath(candidate.path).name.split(".", 1)[0]
            haystacks.append(_squash(strip_prefix(stem, *prefixes)))

        best: System | None = None
        best_len = 0
        for slot in slots:
            if not slot.is_open:
                continue
            needle = _squash(slot.system.name)
            # Longest system name wins so "crm_archive" beats "crm".
            if needle and len(needle) > best_len and any(needle in h for h in haystacks):
                best, best_len = slot.system, len(needle)
        return best


class FirstSystemFallback:
    name = "fallback"
    lossy = True

    def match(self, candidate: LinkCandidate, slots: Sequence[SystemSlot], prefixes: Sequence[str]) -> System | None:
        return next((s.system for s in slots if s.is_open), None)


LINKAGE_STRATEGIES: tuple[LinkageStrategy, ...] = (
    ManifestMembership(),
    MetadataSystemId(),
    NameMatch(),
    FirstSystemFallback(),
)


# -- Resolver ------------------------------------------------------------------


class LinkageResolver:
    """Applies ``LINKAGE_STRATEGIES`` to the tables and assets of each domain."""

    def __init__(
        self,
        identities: IdentityMap,
        strategies: Sequence[LinkageStrategy] = LINKAGE_STRATEGIES,
    ) -> None:
        self._identities = identities
        self._strategies = tuple(strategies)

    def link_systems(
        self,
        result: DomainLoadResult,
        specs: Sequence[SystemSpec],
        prefixes: Sequence[str] = (),
    ) -> None:
        """Fill ``table_ids`` / ``asset_ids`` of ``result.systems`` in place.

        ``specs`` is aligned with ``result.systems``.
        """
        for kind, field_name, label in (
            (ResourceKind.TABLE, "table_ids", "table"),
            (ResourceKind.ASSET, "asset_ids", "asset"),
        ):
            slots = [
                SystemSlot(
                    system=system,
                    declared=(
                        self._identities.resolve_all(getattr(spec, field_name), label=label)
                        if getattr(spec, field_name) is not None
                        else None
                    ),
                )
                for system, spec in zip(result.systems, specs, strict=True)
            ]
            members: dict[str, list[str]] = {s.system.id: list(s.declared or []) for s in slots}

            for entity in result.of_kind(kind):
                candidate = LinkCandidate(
                    entity_id=entity.id,
                    name=display_name(entity),
                    path=result.sources.get(entity.id),
                    system_hint=self._identities.resolve(getattr(entity, "system_hint", None), label="system"),
                )
                system, strategy = self.resolve(candidate, slots, prefixes)
                if system is None:
                    continue
                if entity.id not in members[system.id]:
                    members[system.id].append(entity.id)
                if strategy.lossy:
                    _report_fallback(result.report, label, candidate, system)

            for slot in slots:
                setattr(slot.system, field_name, members[slot.system.id])

    def resolve(
        self,
        candidate: LinkCandidate,
        slots: Sequence[SystemSlot],
        prefixes: Sequence[str] = (),
    ) -> tuple[System | None, LinkageStrategy | None]:
        """First ``(system, strategy)`` match, or ``(None, None)``."""
        for strategy in self._strategies:
            if (system := strategy.match(candidate, slots, prefixes)) is not None:
                return system, strategy
        return None, None


def _report_fallback(report: LoadReport, label: str, candidate: LinkCandidate, system: System) -> None:
    logger.warning(
        "No system hint for {} '{}'; assigned to first system '{}'",
        label,
        candidate.name,
        system.name,
    )
    report.add(
        IssueKind.LINKAGE_FALLBACK,
        f"{label} '{candidate.name}' assigned to first system '{system.name}'",
        path=candidate.path,
        entity_id=candidate.entity_id,
    )


def resolve_relationship_domain(
    relationship: Relationship,
    table_domains: Mapping[str, str | None],
) -> str | None:
    """Domain of the source table, else of the target table, else ``None``.

    Either endpoint id may be absent.
    """
    for table_id in (relationship.source_table_id, relationship.target_table_id):
        if table_id is not None and (domain_id := table_domains.get(table_id)) is not None:
            return domain_id
    return None
