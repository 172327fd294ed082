from __future__ import annotations

import logging

from ..config import ProviderSettings
from ..models import ProviderError
from .tmdb import TMDbClient

logger = logging.getLogger(__name__)


def validate_providers(settings: ProviderSettings, client: TMDbClient | None = None) -> None:
    errors: list[str] = []
    try:
        _validate_tmdb(settings, client)
    except Exception as exc:  # pragma: no cover - network failure depends on env
        errors.append(f"TMDB validation failed: {exc}")
    if errors:
        message = "\n".join(errors)
        raise SystemExit(f"Provider validation failed:\n{message}")


def _validate_tmdb(settings: ProviderSettings, client: TMDbClient | None) -> None:
    if not settings.tmdb_api_key or settings.tmdb_api_key.strip().lower() in {"x", "changeme", "your-api-key"}:
        raise RuntimeError("providers.tmdb_api_key must be set to a real TMDB API key")
    client = client or TMDbClient(settings)
    try:
        payload = client.configuration()
    except ProviderError as exc:
        if "401" in str(exc):
            raise RuntimeError("TMDB API key rejected") from exc
        raise RuntimeError(f"unable to reach TMDB API: {exc}") from exc
    images = payload.get("images") or {}
    logger.debug("TMDB preflight ok; image base %s", images.get("secure_base_url"))
