from __future__ import annotations

import csv
from typing import Iterable

import pandas as pd

from event_export.core.catalog import BundleDescriptor
from event_export.core.normalizer import normalize_records
from event_export.domain import Artifact, SourceRecord


def render_csv(headers: list[str], rows: list[list[str]]) -> str:
    """Render quoted CSV text; an empty ``rows`` still yields the header line."""

    df = pd.DataFrame(rows, columns=headers, dtype=str)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def encode_csv(bundle: BundleDescriptor, records: Iterable[SourceRecord], *, filename: str | None = None) -> Artifact:
    if bundle.output_kind != "tabular":
        raise ValueError(f"bundle {bundle.id} is not tabular")
    rows = normalize_records(bundle, records)
    text = render_csv(bundle.headers, rows)
    return Artifact(
        content=text.encode("utf-8"),
        filename=filename or f"{bundle.id}.{bundle.extension}",
        media_type=bundle.media_type,
        output_kind=bundle.output_kind,
    )
