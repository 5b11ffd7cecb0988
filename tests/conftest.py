import pytest
import requests

from pmo_saver.errors import ExternalServiceError
from pmo_saver.models import AttachmentRecord
from pmo_saver.property_store import PropertyStore


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, json_error=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))
        self._json_error = json_error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)


class FakeFile:
    def __init__(self, name, size):
        self.name = name
        self.size = size


class FakeFolder:
    def __init__(self, name="PMO CXPRODELIVERY-6500", files=None, fail_on=()):
        self.name = name
        self.files = list(files or [])
        self.fail_on = set(fail_on)

    def files_by_name(self, name):
        return iter([item for item in self.files if item.name == name])

    def create_file(self, record, name=None):
        if record.name in self.fail_on:
            raise ExternalServiceError(f"upload of {record.name} refused")
        created = FakeFile(name or record.name, record.size)
        self.files.append(created)
        return created


class FakeDriveStore:
    def __init__(self, folders=None, error=None):
        self.folders = folders or {}
        self.error = error
        self.requested = []

    def get_folder_by_id(self, folder_id):
        self.requested.append(folder_id)
        if self.error is not None:
            raise ExternalServiceError(self.error)
        if folder_id not in self.folders:
            raise ExternalServiceError("File not found")
        return self.folders[folder_id]


def make_record(name, size, index, content=None):
    return AttachmentRecord(
        name=name,
        size=size,
        source_index=index,
        content=content if content is not None else b"x" * size,
        message_id=f"msg-{index}",
        attachment_id=f"att-{index}",
    )


@pytest.fixture
def property_store(tmp_path):
    return PropertyStore(tmp_path / "data" / "store.db", "pm@example.com")


@pytest.fixture
def network_error():
    return requests.ConnectionError("connection reset")
