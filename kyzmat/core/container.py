"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, base relationnelle, magasin clé/valeur, stockage
objet, authentification, catalogue, administration) et expose un singleton `container`
utilisé par le reste de l'application.
"""

from __future__ import annotations

import structlog
from redis.exceptions import RedisError

from kyzmat.core.settings import Settings, get_settings
from kyzmat.domain.admin import AdminService
from kyzmat.domain.catalog import CatalogService
from kyzmat.domain.entities import CatalogKind
from kyzmat.domain.localization import Translator, load_catalogs, parse_language
from kyzmat.infra.auth_backend import AuthBackend
from kyzmat.infra.kv_store import InMemoryKeyValueStore, RedisKeyValueStore
from kyzmat.infra.object_storage import FileSystemObjectStorage
from kyzmat.infra.repo.account_repo import AdminRpc, ProfileRepo, UserRepo
from kyzmat.infra.repo.catalog_repo import CatalogTableRepo
from kyzmat.infra.repo.db import get_engine, get_session_factory
from kyzmat.infra.repo.models import Base

log = structlog.get_logger(__name__)


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        s = self.settings
        self.default_language = parse_language(s.DEFAULT_LANGUAGE)

        # base relationnelle
        self.engine = get_engine(s.DATABASE_URL)
        self.session_factory = get_session_factory(self.engine)
        if s.DB_CREATE_ALL:
            Base.metadata.create_all(self.engine)
        self.user_repo = UserRepo(self.session_factory)
        self.profile_repo = ProfileRepo(self.session_factory)
        self.admin_rpc = AdminRpc(self.session_factory)
        self.catalog_repos = {
            kind: CatalogTableRepo(self.session_factory, kind) for kind in CatalogKind
        }

        # clé/valeur (brouillons, préférences)
        if s.REDIS_URL:
            try:
                self.kv = RedisKeyValueStore(s.REDIS_URL)
                self.storage_backend = "redis"
            except (RedisError, ValueError) as err:
                if s.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                log.warning("redis_unavailable_fallback_memory", error=str(err))
                self.kv = InMemoryKeyValueStore()
                self.storage_backend = "memory-fallback"
        else:
            if s.REQUIRE_REDIS:
                raise RuntimeError("Redis required but REDIS_URL not set")
            self.kv = InMemoryKeyValueStore()
            self.storage_backend = "memory"

        self.object_storage = FileSystemObjectStorage(s.STORAGE_DIR, s.STORAGE_PUBLIC_BASE_URL)
        self.auth_backend = AuthBackend(
            self.user_repo,
            secret=s.JWT_SECRET,
            alg=s.JWT_ALG,
            expires_min=s.JWT_EXPIRES_MIN,
            recovery_expires_min=s.RECOVERY_EXPIRES_MIN,
            password_min_length=s.PASSWORD_MIN_LENGTH,
            max_failed_attempts=s.AUTH_MAX_FAILED_ATTEMPTS,
        )
        self.translator = Translator(load_catalogs())
        self.catalog = CatalogService(
            self.catalog_repos, storage=self.object_storage, bucket=s.STORAGE_BUCKET
        )
        self.admin = AdminService(self.admin_rpc, self.catalog)


container = Container()
