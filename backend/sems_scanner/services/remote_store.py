"""
Client du store distant utilisé par l'appareil.

Deux appels seulement :
- fetch_event_snapshot : GET  /api/sems/events/{event_id}/scanner-resources
- upload_scans         : POST /api/sems/events/{event_id}/scans

Toute erreur de transport, réponse non-2xx ou enveloppe {"success": false}
est convertie en RemoteStoreError.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from sems_scanner.config import settings
from sems_scanner.schemas.scanner_resources import ScannerResources
from sems_scanner.schemas.sync import ScanUploadItem, ScanUploadRequest, ScanUploadResponse

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Le store distant est injoignable ou a refusé la requête."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class HttpRemoteStore:
    """
    Implémentation HTTP du store distant.

    `client` permet d'injecter un httpx.Client déjà configuré (ex. TestClient de FastAPI
    en test). Sinon un client est créé sur REMOTE_API_URL avec REMOTE_TIMEOUT_SECONDS.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        self._owns_client = client is None
        self.client = client or httpx.Client(
            base_url=base_url or settings.REMOTE_API_URL,
            timeout=timeout or settings.REMOTE_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Store distant injoignable (%s %s) : %s", method, url, exc)
            raise RemoteStoreError(f"Store distant injoignable : {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error or not isinstance(body, dict) or body.get("success") is False:
            error = body.get("error") if isinstance(body, dict) else None
            error = error or {}
            message = error.get("message") or f"Requête refusée (statut {response.status_code})."
            logger.error("Store distant : %s %s → %s", method, url, message)
            raise RemoteStoreError(message, status_code=response.status_code, code=error.get("code"))

        return body.get("data") or {}

    def fetch_event_snapshot(self, event_id: str) -> ScannerResources:
        data = self._request("GET", f"/api/sems/events/{event_id}/scanner-resources")
        try:
            return ScannerResources.model_validate(data)
        except ValidationError as exc:
            raise RemoteStoreError("Données de scanner invalides reçues du serveur.") from exc

    def upload_scans(self, event_id: str, scans: List[ScanUploadItem]) -> ScanUploadResponse:
        payload = ScanUploadRequest(scans=scans).model_dump(mode="json")
        data = self._request("POST", f"/api/sems/events/{event_id}/scans", json=payload)
        try:
            return ScanUploadResponse.model_validate(data)
        except ValidationError as exc:
            raise RemoteStoreError("Rapport de synchronisation invalide reçu du serveur.") from exc
