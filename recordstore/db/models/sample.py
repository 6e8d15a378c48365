"""Sample model - a bare two-column table used by the raw SQL operations."""

from dataclasses import dataclass

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import EntityDescriptor, FieldSpec

sample = sa.Table(
    "sample",
    metadata,
    sa.Column("id", sa.String(100), primary_key=True),
    sa.Column("name", sa.String(100), nullable=False),
)


@dataclass
class Sample:
    id: str = ""
    name: str = ""


sample_descriptor = EntityDescriptor(Sample, sample, [FieldSpec.of("id"), FieldSpec.of("name")])
