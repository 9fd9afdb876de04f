import json
from unittest.mock import MagicMock, Mock

import pytest

from timething.config import Settings


def fake_response(payload=None, status=200, text=None, bad_json=False):
    resp = Mock()
    resp.status_code = status
    resp.text = text if text is not None else json.dumps(payload)
    if bad_json:
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        resp.json.return_value = payload
    return resp


def fake_session(*responses):
    """Session whose get() answers with `responses` in order."""
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


@pytest.fixture
def settings(tmp_path):
    return Settings(
        harvest_access_token="token-abc",
        harvest_account_id="111",
        forecast_account_id="222",
        cache_file=tmp_path / "projects.json",
    )


@pytest.fixture
def forecast_projects():
    return [
        {
            "id": 42,
            "harvest_id": 500,
            "name": "Website",
            "code": "WEB",
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "archived": False,
        },
        {
            "id": 43,
            "harvest_id": 501,
            "name": "Old App",
            "code": "OLD",
            "archived": True,
        },
        {
            "id": 44,
            "harvest_id": None,
            "name": "Internal",
            "code": "INT",
            "archived": False,
        },
    ]


@pytest.fixture
def project_assignments():
    return [
        {
            "id": 900,
            "project": {"id": 500, "name": "Website", "code": "WEB"},
            "client": {"id": 10, "name": "Acme"},
            "task_assignments": [
                {"id": 1, "billable": True, "task": {"id": 7, "name": "Development"}},
                {"id": 2, "billable": False, "task": {"id": 8, "name": "Meetings"}},
            ],
        },
        {
            "id": 901,
            "project": {"id": 600, "name": "Support", "code": "SUP"},
            "client": {"id": 10, "name": "Acme"},
            "task_assignments": [],
        },
        {
            "id": 902,
            "project": {"id": 700, "name": "Mobile", "code": "MOB"},
            "client": {"id": 20, "name": "Globex"},
            "task_assignments": [],
        },
    ]


@pytest.fixture
def time_entries():
    return [
        {"id": 1, "hours": 4.0, "spent_date": "2024-05-13", "client": {"id": 10}, "project": {"id": 500}},
        {"id": 2, "hours": 6.5, "spent_date": "2024-05-14", "client": {"id": 10}, "project": {"id": 500}},
        {"id": 3, "hours": 2.0, "spent_date": "2024-05-14", "client": {"id": 20}, "project": {"id": 700}},
    ]
