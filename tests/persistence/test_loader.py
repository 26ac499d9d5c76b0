"""Unit tests for load_workspace over both layouts.

All sources are in-memory ``MemorySource`` instances.
"""

from __future__ import annotations

import pytest
from factories import (
    CRM_ID,
    CUSTOMERS_ID,
    FINANCE_ID,
    INVOICES_ID,
    ORDERS_ID,
    SALES_ID,
    WS_ID,
    make_id,
    manifest_yaml,
    table_yaml,
)

from modelkeeper.persistence.errors import IdCollisionError, MalformedManifestError, NoWorkspaceFoundError
from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine, dump_yaml
from modelkeeper.persistence.identity import IdentityMap, is_valid_uuid
from modelkeeper.persistence.loading.loader import load_workspace
from modelkeeper.persistence.loading.source import MemorySource
from modelkeeper.persistence.models.enums import Cardinality, IssueKind, WorkspaceFormat

SALES = {"id": SALES_ID, "name": "Sales"}
FINANCE = {"id": FINANCE_ID, "name": "Finance"}


async def _load(files: dict[str, str], engine: YamlFormatEngine, name: str = ""):
    return await load_workspace(MemorySource(files, name=name), engine)


# -- Identity ------------------------------------------------------------------


def test_identity_map_keeps_valid_and_replaces_invalid() -> None:
    identities = IdentityMap()
    assert identities.normalize(ORDERS_ID, label="table") == ORDERS_ID

    replaced = identities.normalize("table-1", label="table")
    assert is_valid_uuid(replaced)
    assert identities.resolve("table-1", label="table") == replaced
    # Aliases are per label.
    assert identities.resolve("table-1", label="domain") == "table-1"


def test_identity_map_duplicate_invalid_ids_stay_distinct() -> None:
    identities = IdentityMap()
    first = identities.normalize("t1", label="table")
    second = identities.normalize("t1", label="table")
    assert first != second
    assert identities.resolve("t1", label="table") == first


def test_identity_map_missing_id() -> None:
    identities = IdentityMap()
    assert is_valid_uuid(identities.normalize(None))
    assert identities.resolve_all(["a", None, "a", ""]) == ["a"]


# -- Flat layout ---------------------------------------------------------------


async def test_load_flat_workspace(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": manifest_yaml(
            domains=[SALES, FINANCE],
            relationships=[
                {
                    "id": make_id("rel"),
                    "source_table_id": CUSTOMERS_ID,
                    "target_table_id": ORDERS_ID,
                    "cardinality": "one_to_many",
                }
            ],
        ),
        "odcs/acme_sales_orders.odcs.yaml": table_yaml("orders", ORDERS_ID),
        "odcs/acme_sales_customers.odcs.yaml": table_yaml("customers", CUSTOMERS_ID),
        "odcs/acme_finance_invoices.odcs.yaml": table_yaml("invoices", INVOICES_ID),
        "odps/acme_sales_revenue.odps.yaml": dump_yaml({"name": "Revenue"}),
        "notes.txt": "ignored",
    }
    result = await _load(files, engine)

    assert result.format == WorkspaceFormat.V2
    snapshot = result.snapshot
    assert snapshot.workspace.id == WS_ID
    assert [d.name for d in snapshot.workspace.domains] == ["Sales", "Finance"]
    assert snapshot.workspace.owner_id == "offline-user"

    tables = {t.name: t for t in snapshot.resources.tables}
    assert tables["orders"].primary_domain_id == SALES_ID
    assert tables["orders"].workspace_id == WS_ID
    assert tables["orders"].visible_domains == [SALES_ID]
    assert tables["invoices"].primary_domain_id == FINANCE_ID

    (product,) = snapshot.resources.products
    assert product.domain_id == SALES_ID
    assert is_valid_uuid(product.id)

    (relationship,) = snapshot.resources.relationships
    assert relationship.domain_id == SALES_ID
    assert relationship.workspace_id == WS_ID
    assert (relationship.source_cardinality, relationship.target_cardinality) == (Cardinality.ONE, Cardinality.MANY)
    assert result.report.issues == []


async def test_partial_load_skips_bad_file(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": manifest_yaml(domains=[SALES]),
        "odcs/acme_sales_a.odcs.yaml": table_yaml("a"),
        "odcs/acme_sales_b.odcs.yaml": "tables: [unclosed",
        "odcs/acme_sales_c.odcs.yaml": table_yaml("c"),
    }
    result = await _load(files, engine)

    assert sorted(t.name for t in result.snapshot.resources.tables) == ["a", "c"]
    assert result.report.skipped_paths == ["odcs/acme_sales_b.odcs.yaml"]


async def test_partial_load_skips_empty_and_invalid_records(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": manifest_yaml(domains=[SALES]),
        "odcs/acme_sales_empty.odcs.yaml": "",
        "odcs/acme_sales_list.odcs.yaml": "- just\n- a list\n",
        "odps/acme_sales_nameless.odps.yaml": dump_yaml({"description": "no name"}),
        "odcs/acme_sales_ok.odcs.yaml": table_yaml("ok"),
    }
    result = await _load(files, engine)

    assert [t.name for t in result.snapshot.resources.tables] == ["ok"]
    assert result.snapshot.resources.products == []
    assert sorted(result.report.skipped_paths) == [
        "odcs/acme_sales_empty.odcs.yaml",
        "odcs/acme_sales_list.odcs.yaml",
        "odps/acme_sales_nameless.odps.yaml",
    ]


async def test_invalid_ids_replaced_valid_ids_kept(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": manifest_yaml(
            id="acme",
            domains=[{"id": "sales", "name": "Sales", "systems": [{"id": "crm", "name": "CRM", "table_ids": ["t1"]}]}],
            relationships=[{"source_table_id": "t1", "target_table_id": ORDERS_ID}],
        ),
        "odcs/acme_sales_legacy.odcs.yaml": table_yaml("legacy", "t1"),
        "odcs/acme_sales_orders.odcs.yaml": table_yaml("orders", ORDERS_ID),
    }
    result = await _load(files, engine)
    snapshot = result.snapshot

    assert is_valid_uuid(snapshot.workspace.id)
    domain = snapshot.workspace.domains[0]
    assert is_valid_uuid(domain.id)

    tables = {t.name: t for t in snapshot.resources.tables}
    assert tables["orders"].id == ORDERS_ID
    legacy_id = tables["legacy"].id
    assert is_valid_uuid(legacy_id)
    assert tables["legacy"].primary_domain_id == domain.id

    # References to the old id follow the replacement.
    (crm,) = snapshot.resources.systems
    assert is_valid_uuid(crm.id)
    assert crm.table_ids == [legacy_id]
    (relationship,) = snapshot.resources.relationships
    assert relationship.source_table_id == legacy_id
    assert is_valid_uuid(relationship.id)

    replaced = result.report.of_kind(IssueKind.ID_REPLACED)
    assert [i.entity_id for i in replaced] == [legacy_id]


async def test_duplicate_ids_raise(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": manifest_yaml(domains=[SALES]),
        "odcs/acme_sales_a.odcs.yaml": table_yaml("a", ORDERS_ID),
        "odcs/acme_sales_b.odcs.yaml": table_yaml("b", ORDERS_ID),
    }
    with pytest.raises(IdCollisionError) as exc_info:
        await _load(files, engine)
    assert exc_info.value.entity_id == ORDERS_ID


async def test_duplicate_domain_id_raises(engine: YamlFormatEngine) -> None:
    files = {"acme.workspace.yaml": manifest_yaml(domains=[SALES, {"id": SALES_ID, "name": "Finance"}])}
    with pytest.raises(IdCollisionError) as exc_info:
        await _load(files, engine)
    assert (exc_info.value.entity, exc_info.value.entity_id) == ("domain", SALES_ID)


async def test_malformed_manifest_raises(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": "name: [unclosed",
        "odcs/acme_sales_a.odcs.yaml": table_yaml("a"),
    }
    with pytest.raises(MalformedManifestError):
        await _load(files, engine)


async def test_manifest_without_name_raises(engine: YamlFormatEngine) -> None:
    with pytest.raises(MalformedManifestError):
        await _load({"acme.workspace.yaml": dump_yaml({"id": WS_ID, "domains": []})}, engine)


async def test_no_workspace_raises(engine: YamlFormatEngine) -> None:
    with pytest.raises(NoWorkspaceFoundError):
        await _load({"notes.txt": "hello"}, engine)


async def test_global_knowledge_has_no_domain(engine: YamlFormatEngine) -> None:
    files = {
        "acme.workspace.yaml": manifest_yaml(domains=[SALES]),
        "kb/acme_onboarding.kb.yaml": dump_yaml({"title": "Onboarding", "domain_id": SALES_ID}),
        "kb/acme_sales_playbook.kb.yaml": dump_yaml({"title": "Playbook"}),
    }
    result = await _load(files, engine)
    articles = {a.title: a for a in result.snapshot.resources.knowledge_articles}

    assert articles["Onboarding"].domain_id is None
    assert articles["Playbook"].domain_id == SALES_ID


async def test_xml_resources(engine: YamlFormatEngine) -> None:
    bpmn = (
        '<definitions xmlns="http://www.omg.org/spec/BPMN/20100524/MODEL" id="defs">'
        '<process id="checkout" name="Checkout" /></definitions>'
    )
    files = {
        "acme.workspace.yaml": manifest_yaml(domains=[SALES]),
        "bpmn/acme_sales_checkout.bpmn": bpmn,
        "bpmn/acme_sales_broken.bpmn": "<definitions>",
    }
    result = await _load(files, engine)

    (process,) = result.snapshot.resources.processes
    assert process.name == "Checkout"
    assert process.domain_id == SALES_ID
    assert process.model_extra["content"] == bpmn
    assert result.report.skipped_paths == ["bpmn/acme_sales_broken.bpmn"]


# -- Legacy layout -------------------------------------------------------------


def _legacy_files() -> dict[str, str]:
    return {
        "acme/workspace.yaml": dump_yaml({"id": WS_ID, "description": "legacy"}),
        "acme/sales/domain.yaml": dump_yaml(
            {
                "id": SALES_ID,
                "name": "Sales",
                "systems": [{"id": CRM_ID, "name": "CRM", "table_ids": ["t1"]}],
            }
        ),
        "acme/sales/tables.yaml": dump_yaml(
            {"tables": [{"id": "t1", "name": "orders"}, {"id": "t2", "name": "customers"}]}
        ),
        "acme/sales/relationships.yaml": dump_yaml(
            {"relationships": [{"source_id": "t2", "target_id": "t1", "description": "places"}]}
        ),
        "acme/finance/tables.yaml": dump_yaml({"tables": [{"id": INVOICES_ID, "name": "invoices"}]}),
        "acme/guide.kb.yaml": dump_yaml({"title": "Guide"}),
    }


async def test_load_legacy_workspace(engine: YamlFormatEngine) -> None:
    result = await _load(_legacy_files(), engine)
    snapshot = result.snapshot

    assert result.format == WorkspaceFormat.V1
    assert snapshot.workspace.name == "acme"
    assert snapshot.workspace.id == WS_ID
    assert snapshot.workspace.description == "legacy"
    assert sorted(d.name for d in snapshot.workspace.domains) == ["Sales", "finance"]

    tables = {t.name: t for t in snapshot.resources.tables}
    assert tables["orders"].primary_domain_id == SALES_ID
    assert tables["invoices"].id == INVOICES_ID

    crm = next(s for s in snapshot.resources.systems if s.id == CRM_ID)
    assert crm.table_ids == [tables["orders"].id]

    (relationship,) = snapshot.resources.relationships
    assert relationship.source_table_id == tables["customers"].id
    assert relationship.target_table_id == tables["orders"].id
    assert relationship.notes == "places"
    assert relationship.domain_id == SALES_ID

    (guide,) = snapshot.resources.knowledge_articles
    assert guide.domain_id is None


async def test_legacy_embedded_tables_and_relationships(engine: YamlFormatEngine) -> None:
    files = {
        "sales/domain.yaml": dump_yaml(
            {
                "name": "Sales",
                "tables": [{"id": ORDERS_ID, "name": "orders"}, {"id": CUSTOMERS_ID, "name": "customers"}],
                "relationships": [
                    {"source_table_id": CUSTOMERS_ID, "target_table_id": ORDERS_ID, "cardinality": "one_to_one"}
                ],
            }
        ),
    }
    result = await _load(files, engine, name="shop")

    assert result.snapshot.workspace.name == "shop"
    assert sorted(t.name for t in result.snapshot.resources.tables) == ["customers", "orders"]
    (relationship,) = result.snapshot.resources.relationships
    assert relationship.target_cardinality == Cardinality.ONE


async def test_legacy_malformed_domain_file_raises(engine: YamlFormatEngine) -> None:
    files = {"acme/sales/domain.yaml": "name: [unclosed", "acme/sales/tables.yaml": "tables: []"}
    with pytest.raises(MalformedManifestError):
        await _load(files, engine)


async def test_legacy_unreadable_relationships_file_is_recoverable(engine: YamlFormatEngine) -> None:
    files = {
        "acme/sales/tables.yaml": dump_yaml({"tables": [{"name": "orders"}]}),
        "acme/sales/relationships.yaml": "relationships: [unclosed",
    }
    result = await _load(files, engine)

    assert [t.name for t in result.snapshot.resources.tables] == ["orders"]
    assert result.report.skipped_paths == ["acme/sales/relationships.yaml"]
