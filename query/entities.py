"""
Entity Configuration Registry

Maps domain field names to database columns and declares the relation between
events and series. The registry is the column contract shared by the planner
and the row mapper: every selected column is aliased as ``{prefix}{field}`` so
rows are read by name, and adding a column to a statement can never shift the
fields the mapper reads.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FieldDef:
    """Maps a domain field name to a database column."""
    column: str
    type: str  # integer, string
    nullable: bool = False


@dataclass(frozen=True)
class RelationshipDef:
    """Defines how one entity relates to another."""
    type: str  # belongs_to
    target_entity: str
    local_key: str  # Column on this entity
    target_key: str  # Column on target entity
    column_prefix: str  # Alias prefix for the target's columns in a joined row


@dataclass
class EntityConfig:
    """Complete configuration for a queryable entity."""
    table: str
    fields: dict[str, FieldDef]
    relationships: dict[str, RelationshipDef] = field(default_factory=dict)
    identifier: str = "id"
    table_alias: str = ""  # Auto-set if empty

    def __post_init__(self):
        if not self.table_alias:
            self.table_alias = self.table[0]  # First letter as default alias

    @property
    def required_fields(self) -> list[str]:
        """Fields a valid entity cannot be built without."""
        return [name for name, f in self.fields.items() if not f.nullable]

    def columns(self, prefix: str = "") -> tuple[str, ...]:
        """Row column names for this entity under the given alias prefix."""
        return tuple(f"{prefix}{name}" for name in self.fields)

    def recognizes(self, field_name: str) -> bool:
        return field_name in self.fields or field_name in self.relationships


# =============================================================================
# Entity Registry
# =============================================================================

ENTITIES: dict[str, EntityConfig] = {
    "series": EntityConfig(
        table="series",
        table_alias="s",
        fields={
            "id": FieldDef(column="id", type="integer"),
            "name": FieldDef(column="name", type="string"),
            "description": FieldDef(column="description", type="string", nullable=True),
        },
    ),

    "events": EntityConfig(
        table="events",
        table_alias="e",
        fields={
            "id": FieldDef(column="id", type="integer"),
            "title": FieldDef(column="title", type="string"),
        },
        relationships={
            "partOf": RelationshipDef(
                type="belongs_to",
                target_entity="series",
                local_key="part_of",
                target_key="id",
                column_prefix="series_",
            ),
        },
    ),
}

