from __future__ import annotations

import json

import pandas as pd

from ..models.task_record import CANONICAL_FIELDS

"""Sample import documents in canonical naming, for operators to copy from."""

__all__ = [
    "SAMPLE_TASKS",
    "generate_sample_csv",
    "generate_sample_json",
]

SAMPLE_TASKS: list[dict[str, object]] = [
    {
        "projectName": "Website Redesign",
        "pages": 8,
        "rate": 150,
        "workStatus": "In Progress",
        "paymentStatus": "Unpaid",
        "notes": "Modern responsive design with dark mode",
        "acceptedDate": "2024-01-15",
        "submissionDate": "2024-02-15",
    },
    {
        "projectName": "Logo Design",
        "pages": 3,
        "rate": 200,
        "workStatus": "Pending",
        "paymentStatus": "Unpaid",
        "notes": "Brand identity for tech startup",
        "acceptedDate": "2024-01-20",
        "submissionDate": "2024-02-05",
    },
    {
        "projectName": "Mobile App UI",
        "pages": 12,
        "rate": 120,
        "workStatus": "Completed",
        "paymentStatus": "Paid",
        "notes": "iOS and Android app interface",
        "acceptedDate": "2024-01-01",
        "submissionDate": "2024-01-25",
    },
]


def generate_sample_csv() -> str:
    df = pd.DataFrame(SAMPLE_TASKS, columns=list(CANONICAL_FIELDS))
    return df.to_csv(index=False, lineterminator="\n")


def generate_sample_json() -> str:
    return json.dumps(SAMPLE_TASKS, indent=2, ensure_ascii=False)
