"""Per-domain resource loading.

For every resource kind of a domain the loader reads the file text, hands it
to the format engine, validates each record against its closed model, gives
it a stable UUID and stamps ownership.  A file that is empty, unreadable,
unparsable or of the wrong shape is skipped and reported; it never aborts
the domain.

Resource kinds within a domain load concurrently, and the loader is safe to
run for several domains at once (the identity map is only touched between
awaits).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import anyio
from loguru import logger
from pydantic import ValidationError

from modelkeeper.persistence.errors import FormatEngineError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.identity import IdentityMap
from modelkeeper.persistence.layout.categorize import DomainFiles
from modelkeeper.persistence.loading.plan import DomainPlan, InlineRecord
from modelkeeper.persistence.loading.source import FileSource
from modelkeeper.persistence.models.enums import IssueKind, ResourceKind
from modelkeeper.persistence.models.reports import LoadReport
from modelkeeper.persistence.models.resources import RESOURCE_MODELS, ResourceBase, validate_resource
from modelkeeper.persistence.models.workspace import Domain, System


def entity_label(kind: ResourceKind) -> str:
    """Identity label of a resource kind (``"table"``, ``"asset"``, ...)."""
    return RESOURCE_MODELS[kind].model_fields["entity_type"].default


@dataclass
class DomainLoadResult:
    """Everything loaded for one domain, before cross-domain assembly.

    ``domain=None`` marks the workspace-global bucket (knowledge articles and
    decision records without a domain).
    """

    domain: Domain | None
    systems: list[System] = field(default_factory=list)
    resources: dict[ResourceKind, list[ResourceBase]] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)
    """Entity id -> file path it was read from."""

    report: LoadReport = field(default_factory=LoadReport)

    def of_kind(self, kind: ResourceKind) -> list[ResourceBase]:
        return self.resources.get(kind, [])


class ResourceLoader:
    """Loads the resource files of one workspace from a ``FileSource``."""

    def __init__(
        self,
        source: FileSource,
        engine: FormatEngine,
        identities: IdentityMap,
        *,
        workspace_id: str,
    ) -> None:
        self._source = source
        self._engine = engine
        self._identities = identities
        self._workspace_id = workspace_id

    async def load_domain(self, plan: DomainPlan, domain: Domain, systems: list[System]) -> DomainLoadResult:
        result = DomainLoadResult(domain=domain, systems=systems)
        await self._load_all(result, plan.files, plan.inline)
        logger.debug(
            "Loaded domain '{}': {}",
            domain.name,
            {k.value: len(v) for k, v in result.resources.items() if v},
        )
        return result

    async def load_global(self, files: DomainFiles) -> DomainLoadResult:
        result = DomainLoadResult(domain=None)
        await self._load_all(result, files, {})
        return result

    async def _load_all(
        self,
        result: DomainLoadResult,
        files: DomainFiles,
        inline: dict[ResourceKind, list[InlineRecord]],
    ) -> None:
        kinds = [k for k in ResourceKind if files.get(k) or inline.get(k)]
        loaded: dict[ResourceKind, list[tuple[ResourceBase, str]]] = {}

        async def run(kind: ResourceKind) -> None:
            loaded[kind] = await self.load_kind(
                kind, files.get(kind), inline.get(kind, []), result.domain, result.report
            )

        async with anyio.create_task_group() as tg:
            for kind in kinds:
                tg.start_soon(run, kind)

        # Task completion order is not deterministic; rebuild in enum order.
        for kind in kinds:
            for resource, path in loaded[kind]:
                result.resources.setdefault(kind, []).append(resource)
                result.sources[resource.id] = path

    # -- Per kind ----------------------------------------------------------------

    async def load_kind(
        self,
        kind: ResourceKind,
        paths: list[str],
        inline: list[InlineRecord],
        domain: Domain | None,
        report: LoadReport,
    ) -> list[tuple[ResourceBase, str]]:
        """Load every file (and embedded record) of one kind, skipping bad ones."""
        loaded: list[tuple[ResourceBase, str]] = []
        for path in paths:
            for raw in await self._read_records(kind, path, report):
                if (resource := self._build(kind, raw, path, domain, report)) is not None:
                    loaded.append((resource, path))
        for record in inline:
            if (resource := self._build(kind, dict(record.raw), record.path, domain, report)) is not None:
                loaded.append((resource, record.path))
        return loaded

    async def _read_records(self, kind: ResourceKind, path: str, report: LoadReport) -> list[Any]:
        try:
            text = await self._source.read(path)
        except (OSError, UnicodeDecodeError) as exc:
            return self._skip(report, path, f"unreadable: {exc}")

        if not text.strip():
            return self._skip(report, path, "empty file")

        try:
            parsed = await self._engine.parse(kind, text)
        except FormatEngineError as exc:
            return self._skip(report, path, str(exc))
        except Exception as exc:  # noqa: BLE001
            # The engine is an external collaborator; any failure stays per-file.
            return self._skip(report, path, f"{type(exc).__name__}: {exc}")

        records = _split_records(kind, parsed)
        if records is None:
            return self._skip(report, path, f"unexpected {type(parsed).__name__} document")
        return records

    def _build(
        self,
        kind: ResourceKind,
        raw: Any,
        path: str,
        domain: Domain | None,
        report: LoadReport,
    ) -> ResourceBase | None:
        label = entity_label(kind)
        if not isinstance(raw, dict):
            self._skip(report, path, f"{label} record is not a mapping")
            return None
        raw = dict(raw)
        original = raw.get("id")
        raw["id"] = self._identities.normalize(original, label=label)
        if original not in (None, "") and raw["id"] != original:
            report.add(
                IssueKind.ID_REPLACED,
                f"Invalid {label} id {original!r} replaced",
                path=path,
                entity_id=raw["id"],
            )
        self._stamp(kind, raw, domain)

        try:
            resource = validate_resource(kind, raw)
        except ValidationError as exc:
            errors = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
            self._skip(report, path, f"invalid {label}: {errors}")
            return None
        return resource

    def _stamp(self, kind: ResourceKind, raw: dict[str, Any], domain: Domain | None) -> None:
        domain_id = domain.id if domain is not None else None
        if kind == ResourceKind.TABLE:
            raw["workspace_id"] = self._workspace_id
            raw["primary_domain_id"] = domain_id
            visible = raw.get("visible_domains")
            refs = visible if isinstance(visible, list) else []
            raw["visible_domains"] = self._identities.resolve_all([domain_id, *refs], label="domain")
        elif domain_id is not None or kind not in (ResourceKind.KNOWLEDGE, ResourceKind.DECISION_RECORD):
            raw["domain_id"] = domain_id
        else:
            raw.pop("domain_id", None)

    @staticmethod
    def _skip(report: LoadReport, path: str, reason: str) -> list[Any]:
        logger.warning("Skipping '{}': {}", path, reason)
        report.add(IssueKind.RESOURCE_SKIPPED, reason, path=path)
        return []


def _split_records(kind: ResourceKind, parsed: Any) -> list[Any] | None:
    """Records held by one parsed document, or ``None`` if its shape is wrong.

    Table contract files may carry a ``tables:`` list or a single table.
    """
    if not isinstance(parsed, dict):
        return None
    if kind == ResourceKind.TABLE and "tables" in parsed:
        tables = parsed["tables"] or []
        if not isinstance(tables, list):
            return None
        return list(tables)
    return [parsed]
