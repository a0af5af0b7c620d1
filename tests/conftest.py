"""Configuration de test pour pytest.

Chaque test reçoit un conteneur isolé (sqlite en mémoire, magasin clé/valeur en mémoire,
stockage objet dans un répertoire temporaire) branché sur l'application via
`dependency_overrides`.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so that imports like `from kyzmat...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kyzmat.api.deps import get_container  # noqa: E402
from kyzmat.app.main import app  # noqa: E402
from kyzmat.core.container import Container  # noqa: E402
from kyzmat.core.settings import Settings  # noqa: E402
from kyzmat.domain.entities import Identity, Profile, Role  # noqa: E402
from kyzmat.domain.localization import Language, Translator, load_catalogs  # noqa: E402
from kyzmat.domain.notifications import Notifier  # noqa: E402
from tests.helpers import make_account  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL="sqlite+pysqlite:///:memory:",
        REDIS_URL=None,
        REQUIRE_REDIS=False,
        STORAGE_DIR=str(tmp_path / "storage"),
        JWT_SECRET="test-secret",
        AUTH_MAX_FAILED_ATTEMPTS=3,
    )


@pytest.fixture
def container(settings):
    return Container(settings)


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def translator():
    return Translator(load_catalogs())


@pytest.fixture
def notifier(translator):
    return Notifier(translator=translator, language=Language.KY)


@pytest.fixture
def partner(container) -> tuple[Identity, Profile]:
    return make_account(container, "partner@kyzmat.kg", Role.PARTNER, "Partner")


@pytest.fixture
def admin(container) -> tuple[Identity, Profile]:
    return make_account(container, "admin@kyzmat.kg", Role.ADMIN, "Admin")
