"""
Stockage clé/valeur "local" (chaînes).

Ce module fournit une version en mémoire et une version Redis d'un petit magasin clé/valeur,
utilisé pour la langue d'interface mémorisée, le jeton de session persistant et les brouillons
de formulaires (sérialisés en JSON). Dernière écriture gagnante, sans verrouillage.
"""

import redis


class InMemoryKeyValueStore:
    """Magasin clé/valeur en mémoire (utilisé pour dev/tests).

    Stocke les valeurs dans un dict local, non persistant.
    """

    def __init__(self):
        """Initialise un magasin vide."""
        self._db: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        """Retourne la valeur de `key`, ou None si absente."""
        return self._db.get(key)

    def set(self, key: str, value: str) -> None:
        """Enregistre/écrase la valeur de `key`."""
        self._db[key] = value

    def delete(self, key: str) -> None:
        """Supprime `key` si présente."""
        self._db.pop(key, None)

    def namespaced(self, prefix: str) -> "NamespacedStore":
        """Vue préfixée du magasin (ex: un espace par utilisateur)."""
        return NamespacedStore(self, prefix)


class RedisKeyValueStore:
    """Magasin clé/valeur adossé à Redis (clé: `kv:{key}`)."""

    def __init__(self, url: str):
        """Crée un client Redis à partir de l'URL fournie et vérifie la connexion."""
        self.client = redis.Redis.from_url(url, decode_responses=True)
        self.client.ping()

    def get(self, key: str) -> str | None:
        """Charge la valeur `kv:{key}`, si présente."""
        return self.client.get(f"kv:{key}")

    def set(self, key: str, value: str) -> None:
        """Stocke la valeur sous `kv:{key}`."""
        self.client.set(f"kv:{key}", value)

    def delete(self, key: str) -> None:
        """Supprime `kv:{key}`."""
        self.client.delete(f"kv:{key}")

    def namespaced(self, prefix: str) -> "NamespacedStore":
        """Vue préfixée du magasin (ex: un espace par utilisateur)."""
        return NamespacedStore(self, prefix)


class NamespacedStore:
    """Vue d'un magasin dont toutes les clés sont préfixées par `{prefix}:`."""

    def __init__(self, inner, prefix: str):
        self.inner = inner
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> str | None:
        return self.inner.get(self._k(key))

    def set(self, key: str, value: str) -> None:
        self.inner.set(self._k(key), value)

    def delete(self, key: str) -> None:
        self.inner.delete(self._k(key))

    def namespaced(self, prefix: str) -> "NamespacedStore":
        return NamespacedStore(self.inner, self._k(prefix))
