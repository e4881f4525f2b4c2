"""Test fixtures for the sync core.

This module provides:
- A sample publication row whose normalized title and abstract have
  hand-checked gene offsets (see SAMPLE_* constants)
- A factory fixture for building SourceRecords from column overrides
- In-memory record source and index client fixtures

Offsets in the sample, after normalization:

    title    = "BRCA1 and TP53 interplay in breast cancer"
               BRCA1 0-5, TP53 10-14
    abstract = "Loss of Brca1 sensitizes cells. TP53 mutations co-occur with BRCA1 loss."
               Brca1 8-13, TP53 32-36, BRCA1 61-66
"""

from typing import Any, Callable

import pytest

from pubsync.config import SyncConfig
from pubsync.document import SourceRecord
from pubsync.storage.memory import InMemoryIndexClient, InMemoryRecordSource

SAMPLE_TITLE = "BRCA1 and TP53 interplay in breast cancer"
SAMPLE_ABSTRACT = "  Loss of Brca1 sensitizes cells.\n\nTP53 mutations   co-occur with BRCA1 loss. "
SAMPLE_NORMALIZED_ABSTRACT = "Loss of Brca1 sensitizes cells. TP53 mutations co-occur with BRCA1 loss."

SAMPLE_ROW: dict[str, Any] = {
    "pmid": "31415926",
    "title": SAMPLE_TITLE,
    "abstract": SAMPLE_ABSTRACT,
    "p_date": "2019-03-14",
    "p_year": "2019",
    "authors": "Smith J, Jones K",
    "keywords": "tumor suppressor; DNA repair",
    "mesh_terms": "Breast Neoplasms; Genes, BRCA1 ; Tumor Suppressor Protein p53",
    "chemicals": "Tumor Suppressor Protein p53",
    "affiliation": "Medical College &amp; Research Institute",
    "issn": "1234-5678",
    # stored groups: BRCA1 current, TP53 stale, Myc sentinel
    "gene": "BRCA1 | TP53 | Myc",
    "gene_pos": "0;0-5|1;8-13|1;61-66 | 0;0-4 | 0;0-0",
    "gene_count": "3 | 1 | 0",
    # legacy row whose group delimiter was lost
    "mp_id": "MP:0002006 | MP:0001265",
    "mp_term": "tumorigenesis | decreased body size",
    "mp_pos": "0;1-2|1;3-4|1;5-6",
    "mp_count": "2 | 1",
    "organism_ncbi_id": "9606",
    "organism_term": "Homo sapiens",
    "organism_common_name": "human",
}


@pytest.fixture
def config() -> SyncConfig:
    return SyncConfig()


@pytest.fixture
def make_record() -> Callable[..., SourceRecord]:
    """Factory: make_record(**overrides) builds a record from SAMPLE_ROW.

    An override of None removes the column.
    """

    def _make(**overrides: Any) -> SourceRecord:
        row = dict(SAMPLE_ROW)
        for column, value in overrides.items():
            if value is None:
                row.pop(column, None)
            else:
                row[column] = value
        return SourceRecord.from_row(row)

    return _make


@pytest.fixture
def record(make_record) -> SourceRecord:
    return make_record()


@pytest.fixture
def source(make_record) -> InMemoryRecordSource:
    """Three records: two from 2019, one from 2020."""
    return InMemoryRecordSource(
        [
            make_record(),
            make_record(pmid="27182818", gene="TP53", gene_pos=None, gene_count=None),
            make_record(pmid="16180339", p_year="2020", gene=None, gene_pos=None, gene_count=None),
        ]
    )


@pytest.fixture
def index() -> InMemoryIndexClient:
    return InMemoryIndexClient()
