"""
Frontière entre la capture caméra et le classifieur.

La caméra produit des valeurs à un rythme irrégulier et répète la même valeur
sur plusieurs frames consécutives. Ce module :
- supprime les répétitions d'une même valeur dans une fenêtre courte (debounce),
  avant toute classification : ce n'est pas un DUPLICATE métier
- bascule d'un décodeur principal vers un décodeur de secours après trop d'échecs
- enchaîne capture → classification, un QR à la fois
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional, Tuple

from sems_scanner.config import settings
from sems_scanner.schemas.scan import ScanResult

logger = logging.getLogger(__name__)


class CaptureDebouncer:
    """
    Une valeur identique à la dernière acceptée, reçue moins de `window_ms` après,
    est une frame répétée et n'est pas transmise.
    """

    def __init__(self, window_ms: Optional[int] = None):
        self.window_ms = settings.SCAN_DEBOUNCE_MS if window_ms is None else window_ms
        self.last_value: Optional[str] = None
        self.last_time: Optional[datetime] = None

    def accept(self, value: str, timestamp: datetime) -> bool:
        value = (value or "").strip()
        if not value:
            return False

        if value == self.last_value and self.last_time is not None:
            elapsed_ms = (timestamp - self.last_time).total_seconds() * 1000
            if elapsed_ms <= self.window_ms:
                return False

        self.last_value = value
        self.last_time = timestamp
        return True

    def reset(self) -> None:
        self.last_value = None
        self.last_time = None


class DetectionBackendCascade:
    """
    Décodeur principal puis décodeur de secours.

    États : "primary" → "secondary" (transition unique, sans retour).
    La bascule a lieu après `error_threshold` échecs consécutifs du principal ;
    un décodage réussi remet le compteur à zéro.

    Un décodeur est un callable frame → valeur décodée (ou None si aucun QR).
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"

    def __init__(self, primary: Callable, secondary: Callable, error_threshold: Optional[int] = None):
        self.primary = primary
        self.secondary = secondary
        self.error_threshold = error_threshold or settings.CAPTURE_FALLBACK_THRESHOLD
        self.state = self.PRIMARY
        self.error_count = 0

    @property
    def active(self) -> Callable:
        return self.primary if self.state == self.PRIMARY else self.secondary

    def decode(self, frame) -> Optional[str]:
        if self.state == self.SECONDARY:
            return self.secondary(frame)

        try:
            value = self.primary(frame)
        except Exception as exc:
            self.error_count += 1
            logger.debug("Échec du décodeur principal (%d/%d) : %s", self.error_count, self.error_threshold, exc)
            if self.error_count >= self.error_threshold:
                self.state = self.SECONDARY
                logger.warning(
                    "Décodeur principal abandonné après %d échecs, bascule sur le décodeur de secours",
                    self.error_count,
                )
            return None

        self.error_count = 0
        return value


class ScanLoop:
    """
    Boucle de scan d'un appareil : une seule classification à la fois, dans l'ordre de capture.

    `classify` reçoit (qr_hash, timestamp) et renvoie un ScanResult ; typiquement
    functools.partial(classify_scan, cache, queue, event_id) adapté à cette signature.
    """

    def __init__(self, classify: Callable[[str, datetime], ScanResult], debouncer: Optional[CaptureDebouncer] = None):
        self.classify = classify
        self.debouncer = debouncer or CaptureDebouncer()

    def process(self, value: str, timestamp: datetime) -> Optional[ScanResult]:
        """Classe une valeur capturée, ou renvoie None si c'est une frame répétée."""
        if not self.debouncer.accept(value, timestamp):
            return None
        return self.classify(value.strip(), timestamp)

    def run(self, source: Iterable[Tuple[str, datetime]]) -> Iterator[ScanResult]:
        for value, timestamp in source:
            result = self.process(value, timestamp)
            if result is not None:
                yield result
