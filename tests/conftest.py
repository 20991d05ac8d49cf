import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _coerce_bool(value, default):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if value is None:
        if isinstance(default, bool):
            return default
        return False
    return bool(value)


class _SettingsStub:
    """In-memory replacement for QSettings during tests."""

    _data = {}

    def __init__(self, org="YourCompany", app="GoldEstimateApp"):
        self._key = (org, app)
        self._store = _SettingsStub._data.setdefault(self._key, {})

    def value(self, key, default=None, type=None, **kwargs):  # noqa: A002 - signature mirrors QSettings
        if "defaultValue" in kwargs and default is None:
            default = kwargs["defaultValue"]
        val = self._store.get(key, default)
        if type is bool:
            return _coerce_bool(val, default)
        if type in (int, float) and val is not None:
            return type(val)
        return val

    def setValue(self, key, value):
        self._store[key] = value

    def remove(self, key):
        self._store.pop(key, None)

    def sync(self):  # QSettings compatibility
        return True

    @classmethod
    def clear(cls):
        cls._data.clear()


@pytest.fixture()
def settings_stub(monkeypatch):
    _SettingsStub.clear()
    monkeypatch.setattr("goldestimate.services.settings_service.QSettings", _SettingsStub, raising=False)
    monkeypatch.setattr("goldestimate.infrastructure.settings.QSettings", _SettingsStub, raising=False)
    yield _SettingsStub
    _SettingsStub.clear()


@pytest.fixture()
def fake_gateway():
    from tests.factories import FakeGateway

    return FakeGateway()
