from __future__ import annotations

import json

from task_import.models.task_record import CANONICAL_FIELDS
from task_import.services.column_mapper import map_row
from task_import.services.normalizer import normalize
from task_import.services.samples import SAMPLE_TASKS, generate_sample_csv, generate_sample_json
from task_import.tabular.reader import parse_csv


def test_sample_json_is_importable():
    data = json.loads(generate_sample_json())
    assert data == SAMPLE_TASKS
    assert all(normalize(obj).is_valid for obj in data)


def test_sample_csv_uses_canonical_header():
    text = generate_sample_csv()
    assert text.splitlines()[0] == ",".join(CANONICAL_FIELDS)
    rows = parse_csv(text)
    assert len(rows) == len(SAMPLE_TASKS)
    results = [normalize(map_row(r)) for r in rows]
    assert all(r.is_valid for r in results)
    assert [r.record.total for r in results] == [1200, 600, 1440]
