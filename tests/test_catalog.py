from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from event_export.core.catalog import BUNDLES, get_bundle, list_bundles, select_bundles
from event_export.extractors.sources import registered_bundles


def test_catalog_lists_every_bundle_once():
    ids = [bundle.id for bundle in list_bundles()]
    assert len(ids) == 16
    assert len(set(ids)) == len(ids)
    assert set(ids) == set(registered_bundles())


def test_output_kinds_drive_extension_and_media_type():
    archives = {bundle.id for bundle in BUNDLES if bundle.output_kind == "archive"}
    assert archives == {"chat-media", "module-media", "announcements-media", "itinerary-documents"}

    report = get_bundle("full-data-pdf")
    assert report is not None
    assert report.extension == "pdf"
    assert report.media_type == "application/pdf"

    guests = get_bundle("guests")
    assert guests.extension == "csv"
    assert guests.media_type == "text/csv"
    assert get_bundle("chat-media").extension == "zip"


def test_tabular_bundles_declare_columns():
    for bundle in BUNDLES:
        if bundle.output_kind == "tabular":
            assert bundle.headers, bundle.id
        else:
            assert bundle.headers == [], bundle.id


def test_select_bundles_keeps_request_order_and_drops_unknown_ids():
    selected = select_bundles(["announcements", "nope", "guests", "announcements"])
    assert [bundle.id for bundle in selected] == ["announcements", "guests"]
    assert select_bundles([]) == []


def test_bundle_to_dict_exposes_display_fields():
    data = get_bundle("module-responses-typed").to_dict()
    assert data["name"] == "Module Responses (Typed CSV)"
    assert data["extension"] == "csv"
    assert "Rating" in data["columns"]
    assert data["category"] == "Guest Data"
