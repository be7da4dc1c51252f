"""Shared raw-export fixtures."""

from __future__ import annotations

from typing import Any, Dict

import pytest


def record(record_id: str | None, created: str = "", **fields: Any) -> Dict[str, Any]:
    """Build a raw record; keyword names with underscores map to spaced field names."""
    payload: Dict[str, Any] = {
        "fields": {
            name.replace("__", " - ").replace("_", " "): value for name, value in fields.items()
        }
    }
    if record_id is not None:
        payload["id"] = record_id
    if created:
        payload["createdTime"] = created
    return payload


@pytest.fixture
def scenario_raw() -> Dict[str, Any]:
    """One volunteer storyteller, one media item tagged T1, one story linking both."""
    return {
        "storytellers": [record("ST1", Name="Alex", Role="Volunteer", Media=["M1"])],
        "media": [record("M1", File_Name="interview.mp4", Themes=["T1"], Storyteller=["ST1"])],
        "themes": [record("T1", Description="Finding connection through shared meals.")],
        "stories": [
            record(
                "S1",
                created="2024-03-05T10:00:00.000Z",
                Title="First visit",
                Storytellers=["ST1"],
                Media=["M1"],
            )
        ],
    }


@pytest.fixture
def sample_raw() -> Dict[str, Any]:
    """A small but complete export in the record-store wrapper shape."""
    return {
        "storytellers": {
            "records": [
                record(
                    "ST1",
                    Name="Alex",
                    Role="Volunteer",
                    Location="Brisbane",
                    Bio="Helps every <b>Tuesday</b>.",
                    Media=["M1"],
                ),
                record("ST2", Name="Sam", Role="Friend of Orange Sky", Shift="Sydney Evening"),
                record("ST3", Name="Jo", Role="Service Provider"),
            ]
        },
        "media": {
            "records": [
                record(
                    "M1",
                    File_Name="alex.mp4",
                    Type="Video",
                    Transcript="We talk [00:01:02] a lot.",
                    Themes=["T1", "T2"],
                    Quotes=["Q1", "Q-missing"],
                ),
                record(
                    "M2",
                    File_Name="sam.mp3",
                    Type="Audio",
                    Themes=["T2", "T3"],
                    Storyteller=["ST2"],
                    Location="Sydney",
                ),
                record("M3", File_Name="jo.jpg", Type="Photo", Themes=["T-missing"]),
            ]
        },
        "themes": {
            "records": [
                record("T1", Name="Connection", Description="Community and friendship."),
                record("T2", Description="Support for people doing it hard."),
                record("T3", Description="Hope for a better future.", Parent=["T2"]),
                record("T4", Description=""),
            ]
        },
        "quotes": {"records": [record("Q1", Quote="It feels like family.")]},
        "stories": {
            "records": [
                record(
                    "S1",
                    created="2024-03-05T10:00:00.000Z",
                    Title="Tuesday mornings",
                    Story_copy="<p>Alex started volunteering in 2019.</p>",
                    Storytellers=["ST1"],
                    Media=["M1"],
                    Video_Story_Link="https://example.org/v/1",
                ),
                record(
                    "S2",
                    created="2024-04-11T08:30:00.000Z",
                    Title="A warm shower",
                    Storytellers=["ST2", "ST-missing"],
                    Media=["M2", "M1"],
                ),
                record(
                    "S3",
                    created="2024-03-20T08:30:00.000Z",
                    Title="No links",
                ),
                record(None, Title="Missing id"),
            ]
        },
    }
