"""Builders for test workspaces: fixed ids, a sample snapshot and YAML helpers."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from modelkeeper.persistence.formats.yaml_engine import dump_yaml
from modelkeeper.persistence.models.enums import Cardinality
from modelkeeper.persistence.models.resources import (
    Column,
    ComputeAsset,
    DataProduct,
    DecisionRecord,
    KnowledgeArticle,
    Table,
)
from modelkeeper.persistence.models.workspace import (
    Domain,
    Relationship,
    System,
    Workspace,
    WorkspaceResources,
    WorkspaceSnapshot,
)

_NS = uuid.UUID("8a5d2c36-1d0e-4a57-9a3b-5b8f6b0c2e11")


def make_id(name: str) -> str:
    """Deterministic, valid UUID for a test entity."""
    return str(uuid.uuid5(_NS, name))


WS_ID = make_id("workspace")
SALES_ID = make_id("sales")
FINANCE_ID = make_id("finance")
CRM_ID = make_id("crm")
ERP_ID = make_id("erp")
ORDERS_ID = make_id("orders")
CUSTOMERS_ID = make_id("customers")
INVOICES_ID = make_id("invoices")
LEADS_ID = make_id("leads")
REL_ID = make_id("rel-customers-orders")
PRODUCT_ID = make_id("revenue")
ASSET_ID = make_id("etl")
KB_ID = make_id("onboarding")
ADR_ID = make_id("adr-1")


def make_snapshot() -> WorkspaceSnapshot:
    """Two-domain workspace covering systems, unassigned tables and global articles."""
    created = datetime(2026, 1, 5, 9, 30, tzinfo=UTC)
    workspace = Workspace(
        id=WS_ID,
        name="Acme",
        description="Demo workspace",
        created_at=created,
        last_modified_at=created,
        domains=[
            Domain(id=SALES_ID, workspace_id=WS_ID, name="Sales", description="Order to cash"),
            Domain(id=FINANCE_ID, workspace_id=WS_ID, name="Finance"),
        ],
    )
    pk = Column(name="id", data_type="uuid", nullable=False, is_primary_key=True)
    resources = WorkspaceResources(
        systems=[
            System(
                id=CRM_ID,
                domain_id=SALES_ID,
                name="CRM",
                table_ids=[ORDERS_ID, CUSTOMERS_ID],
                asset_ids=[ASSET_ID],
            ),
            System(id=ERP_ID, domain_id=FINANCE_ID, name="ERP", table_ids=[INVOICES_ID]),
        ],
        tables=[
            Table(
                id=ORDERS_ID,
                name="orders",
                workspace_id=WS_ID,
                primary_domain_id=SALES_ID,
                visible_domains=[SALES_ID],
                columns=[pk, Column(name="customer_id", data_type="uuid")],
            ),
            Table(
                id=CUSTOMERS_ID,
                name="customers",
                workspace_id=WS_ID,
                primary_domain_id=SALES_ID,
                visible_domains=[SALES_ID],
                columns=[pk],
            ),
            Table(
                id=LEADS_ID,
                name="leads",
                workspace_id=WS_ID,
                primary_domain_id=SALES_ID,
                visible_domains=[SALES_ID],
            ),
            Table(
                id=INVOICES_ID,
                name="invoices",
                workspace_id=WS_ID,
                primary_domain_id=FINANCE_ID,
                visible_domains=[FINANCE_ID, SALES_ID],
                columns=[pk],
            ),
        ],
        relationships=[
            Relationship(
                id=REL_ID,
                workspace_id=WS_ID,
                domain_id=SALES_ID,
                source_table_id=CUSTOMERS_ID,
                target_table_id=ORDERS_ID,
                source_cardinality=Cardinality.ONE,
                target_cardinality=Cardinality.MANY,
                color="#ff0000",
            ),
        ],
        products=[DataProduct(id=PRODUCT_ID, domain_id=SALES_ID, name="Revenue")],
        assets=[ComputeAsset(id=ASSET_ID, domain_id=SALES_ID, name="Nightly ETL")],
        knowledge_articles=[KnowledgeArticle(id=KB_ID, title="Onboarding")],
        decision_records=[DecisionRecord(id=ADR_ID, domain_id=FINANCE_ID, title="Use ISO currencies")],
    )
    return WorkspaceSnapshot(workspace=workspace, resources=resources)


def manifest_yaml(**fields: object) -> str:
    """A v2 manifest with sensible defaults for the ``Acme`` workspace."""
    data: dict[str, object] = {"id": WS_ID, "name": "Acme", "domains": [], "relationships": []}
    data.update(fields)
    return dump_yaml(data)


def table_yaml(name: str, table_id: str | None = None, **extra: object) -> str:
    data: dict[str, object] = {"name": name, **extra}
    if table_id is not None:
        data = {"id": table_id, **data}
    return dump_yaml(data)
