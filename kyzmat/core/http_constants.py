"""Constantes HTTP et métier pour éviter les valeurs magiques dans le code.

Ce module définit les codes de statut HTTP utilisés par l'API ainsi que quelques constantes
partagées (clés de stockage local, taille des étapes de progression).
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_PAYLOAD_TOO_LARGE = 413
HTTP_UNSUPPORTED_MEDIA_TYPE = 415
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503

# Clés du stockage clé/valeur "local"
LANGUAGE_STORAGE_KEY = "language"
SESSION_STORAGE_KEY = "kyzmat-auth-token"
DRAFT_KEY_SUFFIX = "-form-draft"

# Progression simulée d'un envoi d'image (pas de 10 jusqu'à 90)
UPLOAD_PROGRESS_STEP = 10
UPLOAD_PROGRESS_CEILING = 90
