import io
import os as _os
import sys
import zipfile
from dataclasses import replace

import pytest

# Ensure project root is importable (so `import main` / `import zad` work without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from zad import db  # noqa: E402
from zad import settings as settings_mod  # noqa: E402


@pytest.fixture
def tmp_db(tmp_path, monkeypatch):
    """Point the sqlite layer at an isolated database and keep the job loop off."""
    s = replace(settings_mod.settings, db_path=str(tmp_path / "zad.db"), autostart=False)
    monkeypatch.setattr(settings_mod, "settings", s)
    db.init_db()
    return s


def make_zip(files=None) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in (files or {"services.xml": "<services/>"}).items():
            zf.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def zip_bytes() -> bytes:
    return make_zip({"services.xml": "<services/>", "hosts.xml": "<hosts/>"})


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
