"""README rendering with Jinja2.

The README is a generated, human-readable summary written at the workspace
root next to the manifest.  It is regenerated on every save and is not read
back on load.
"""

from __future__ import annotations

import jinja2

from modelkeeper.persistence.models.workspace import Workspace, WorkspaceResources

README_TEMPLATE = """\
# {{ workspace.name }}
{% if workspace.description %}

{{ workspace.description }}
{% endif %}

| | Count |
|---|---|
| Domains | {{ workspace.domains | length }} |
| Systems | {{ counts.systems }} |
| Tables | {{ counts.tables }} |
| Relationships | {{ counts.relationships }} |
| Data products | {{ counts.products }} |
| Compute assets | {{ counts.assets }} |
| Processes | {{ counts.processes }} |
| Decision models | {{ counts.decisions }} |
| Knowledge articles | {{ counts.knowledge_articles }} |
| Decision records | {{ counts.decision_records }} |
{% for domain in domains %}

## {{ domain.name }}
{% if domain.description %}

{{ domain.description }}
{% endif %}

{{ domain.tables }} table(s), {{ domain.relationships }} relationship(s)
{%- if domain.systems %}, systems: {{ domain.systems | join(', ') }}{% endif %}
{% endfor %}
"""

_env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)  # noqa: S701
_template = _env.from_string(README_TEMPLATE)


def render_readme(workspace: Workspace, resources: WorkspaceResources) -> str:
    """Render the workspace README (Markdown)."""
    domains = [
        {
            "name": d.name,
            "description": d.description,
            "tables": len(resources.tables_in(d.id)),
            "relationships": sum(1 for r in resources.relationships if r.domain_id == d.id),
            "systems": [s.name for s in resources.systems_in(d.id)],
        }
        for d in workspace.domains
    ]
    return _template.render(workspace=workspace, counts=resources.counts(), domains=domains)
